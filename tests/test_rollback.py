import unittest
from unittest.mock import MagicMock

from launcher import rollback
from launcher.context import MachineRecord, ProvisioningContext
from launcher.errors import InstanceReadyTimeout
from launcher.launch_spec import LaunchSpec
from launcher.pipeline import DESTROY


def make_ctx(machine_id="i-123"):
    return ProvisioningContext(
        spec=LaunchSpec(region="us-east-1", ami="ami-123", instance_type="m1.small"),
        compute=MagicMock(),
        ui=MagicMock(),
        action_runner=MagicMock(),
        machine=MachineRecord(name="web", id=machine_id),
        interrupted=True,
    )


class TestTerminate(unittest.TestCase):
    def test_runs_destroy_with_sanitized_copy(self):
        ctx = make_ctx()

        rollback.terminate(ctx)

        ctx.action_runner.run.assert_called_once()
        workflow, destroy_ctx = ctx.action_runner.run.call_args[0]
        self.assertIs(workflow, DESTROY)
        self.assertIsNot(destroy_ctx, ctx)
        self.assertFalse(destroy_ctx.interrupted)
        self.assertTrue(destroy_ctx.force_confirm_destroy)
        self.assertFalse(destroy_ctx.config_validate)
        self.assertIs(destroy_ctx.machine, ctx.machine)
        # the original context keeps its flags
        self.assertTrue(ctx.interrupted)
        self.assertFalse(ctx.force_confirm_destroy)

    def test_twice_destroys_twice(self):
        ctx = make_ctx()

        rollback.terminate(ctx)
        rollback.terminate(ctx)

        self.assertEqual(ctx.action_runner.run.call_count, 2)

    def test_destroy_failure_propagates(self):
        ctx = make_ctx()
        ctx.action_runner.run.side_effect = RuntimeError("destroy failed")

        with self.assertRaises(RuntimeError):
            rollback.terminate(ctx)


class TestRecover(unittest.TestCase):
    def test_not_created_is_left_alone(self):
        ctx = make_ctx(machine_id=None)
        ctx.error = RuntimeError("later stage failed")

        rollback.recover(ctx)

        ctx.action_runner.run.assert_not_called()

    def test_provider_reports_not_created(self):
        ctx = make_ctx()
        ctx.compute.instance_state.return_value = "not_created"
        ctx.error = RuntimeError("later stage failed")

        rollback.recover(ctx)

        ctx.action_runner.run.assert_not_called()

    def test_existing_machine_is_terminated_once(self):
        ctx = make_ctx()
        ctx.compute.instance_state.return_value = "running"
        ctx.error = RuntimeError("later stage failed")

        rollback.recover(ctx)

        ctx.compute.instance_state.assert_called_once_with("i-123")
        ctx.action_runner.run.assert_called_once()

    def test_own_errors_are_not_recovered(self):
        ctx = make_ctx()
        ctx.compute.instance_state.return_value = "running"
        ctx.error = InstanceReadyTimeout(120)

        rollback.recover(ctx)

        ctx.action_runner.run.assert_not_called()


if __name__ == '__main__':
    unittest.main()
