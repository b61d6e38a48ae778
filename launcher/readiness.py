# launcher/readiness.py
import time
import logging
from enum import Enum

from launcher.metrics import timed
from launcher.utils import WaitTimeout, retryable

log = logging.getLogger("launcher.readiness")

READY_CHECK_INTERVAL = 2
REMOTE_CHECK_INTERVAL = 2


class WaitOutcome(Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    INTERRUPTED = "interrupted"


class ReadinessGate:
    """
    Wait for a freshly launched instance in two phases: the provider reports it
    running (bounded by instance_ready_timeout), then it answers over SSH
    (unbounded, only ended by success or interruption).
    """

    def __init__(self, ctx, ready_interval=READY_CHECK_INTERVAL, remote_interval=REMOTE_CHECK_INTERVAL):
        self.ctx = ctx
        self.ready_interval = ready_interval
        self.remote_interval = remote_interval

    def max_attempts(self, timeout):
        return max(1, int(timeout // self.ready_interval))

    def wait_instance_ready(self, instance) -> WaitOutcome:
        tries = self.max_attempts(self.ctx.spec.instance_ready_timeout)

        def check():
            # an interrupted run does not wait any further
            if self.ctx.interrupted:
                return
            if not instance.ready():
                raise WaitTimeout(f"{instance.id} not ready")

        try:
            retryable(check, tries=tries, on=(WaitTimeout,), sleep=self.ready_interval)
        except WaitTimeout:
            return WaitOutcome.TIMED_OUT
        return WaitOutcome.INTERRUPTED if self.ctx.interrupted else WaitOutcome.READY

    def wait_remote_ready(self, instance) -> WaitOutcome:
        while True:
            if self.ctx.interrupted:
                return WaitOutcome.INTERRUPTED
            if self.ctx.remote.ready(instance):
                return WaitOutcome.READY
            time.sleep(self.remote_interval)

    def wait(self, instance) -> WaitOutcome:
        ctx = self.ctx
        ctx.ui.info("Waiting for instance to become \"ready\"...")
        with timed(ctx.metrics, "instance_ready_time"):
            outcome = self.wait_instance_ready(instance)
        if outcome is WaitOutcome.TIMED_OUT:
            return outcome

        if not ctx.interrupted:
            ctx.ui.info("Waiting for SSH to become available...")
            with timed(ctx.metrics, "instance_ssh_time"):
                outcome = self.wait_remote_ready(instance)
            if outcome is WaitOutcome.READY:
                ctx.ui.info("Machine is booted and ready for use!")

        if ctx.interrupted:
            return WaitOutcome.INTERRUPTED
        return outcome
