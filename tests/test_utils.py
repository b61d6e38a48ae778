import unittest
from unittest.mock import MagicMock, patch

from launcher.metrics import timed
from launcher.utils import WaitTimeout, retryable


@patch("launcher.utils.time.sleep")
class TestRetryable(unittest.TestCase):
    def test_returns_first_success(self, mock_sleep):
        fn = MagicMock(side_effect=[WaitTimeout(), WaitTimeout(), "ok"])
        self.assertEqual(retryable(fn, tries=5, sleep=2), "ok")
        self.assertEqual(fn.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    def test_raises_after_budget(self, mock_sleep):
        fn = MagicMock(side_effect=WaitTimeout())
        with self.assertRaises(WaitTimeout):
            retryable(fn, tries=4, sleep=2)
        self.assertEqual(fn.call_count, 4)
        self.assertEqual(mock_sleep.call_count, 3)

    def test_other_exceptions_are_not_retried(self, mock_sleep):
        fn = MagicMock(side_effect=KeyError("x"))
        with self.assertRaises(KeyError):
            retryable(fn, tries=4)
        self.assertEqual(fn.call_count, 1)

    def test_tries_must_be_positive(self, mock_sleep):
        with self.assertRaises(ValueError):
            retryable(MagicMock(), tries=0)


class TestTimed(unittest.TestCase):
    def test_records_duration(self):
        metrics = {}
        with timed(metrics, "instance_ready_time"):
            pass
        self.assertGreaterEqual(metrics["instance_ready_time"], 0)

    def test_records_duration_when_block_raises(self):
        metrics = {}
        with self.assertRaises(RuntimeError):
            with timed(metrics, "instance_ssh_time"):
                raise RuntimeError("ssh wait failed")
        self.assertIn("instance_ssh_time", metrics)
        self.assertGreaterEqual(metrics["instance_ssh_time"], 0)


if __name__ == '__main__':
    unittest.main()
