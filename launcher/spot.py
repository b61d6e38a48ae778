# launcher/spot.py
import time
import logging
from dataclasses import dataclass
from enum import Enum

from botocore.exceptions import ClientError

from launcher.launch_spec import build_spot_options

log = logging.getLogger("launcher.spot")

POLL_INTERVAL = 5


class SpotState(Enum):
    NOT_CREATED = "not-created"
    OPEN = "open"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value):
        try:
            return cls(str(value).replace("_", "-").lower())
        except ValueError:
            return cls.UNKNOWN


WAITING_STATES = {SpotState.NOT_CREATED, SpotState.OPEN}
FAILED_STATES = {SpotState.CLOSED, SpotState.CANCELLED, SpotState.FAILED}


@dataclass
class SpotRequest:
    id: str
    state: SpotState
    raw_state: str
    fault: str | None = None
    instance_id: str | None = None

    @classmethod
    def from_response(cls, item: dict):
        return cls(
            id=item["SpotInstanceRequestId"],
            state=SpotState.parse(item.get("State")),
            raw_state=item.get("State"),
            fault=(item.get("Fault") or {}).get("Message"),
            instance_id=item.get("InstanceId"),
        )


class SpotRequestPoller:
    """
    Submit a spot bid and wait until it resolves.

    The request is cancelled once polling stops, whatever the outcome; an instance
    that was already started for it keeps running.
    """

    def __init__(self, ctx, poll_interval=POLL_INTERVAL, max_polls=None):
        self.ctx = ctx
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    def submit(self) -> SpotRequest:
        spec = self.ctx.spec
        ui = self.ctx.ui
        ui.info("Launching a spot request instance with the following settings...")
        ui.info(f" -- Price: {spec.spot_max_price}")
        if spec.spot_valid_until:
            ui.info(f" -- Valid until: {spec.spot_valid_until}")
        if spec.monitoring:
            ui.info(f" -- Monitoring: {spec.monitoring}")

        request = self.ctx.compute.request_spot_instances(
            spec.ami, spec.instance_type, spec.spot_max_price, build_spot_options(spec)
        )
        log.info("Spot request ID: %s", request.id)
        ui.info(f"Status: {request.raw_state}")
        return request

    def poll(self, request: SpotRequest):
        """Poll until the request reaches a final state. Returns (last_seen_request, succeeded)."""
        compute = self.ctx.compute
        last_state = request.raw_state
        polls = 0
        while True:
            time.sleep(self.poll_interval)
            if self.ctx.interrupted:
                log.info("Interrupted while waiting for spot request %s", request.id)
                return request, False

            polls += 1
            current = compute.describe_spot_instance_request(request.id)
            if current is not None:
                request = current
                if request.raw_state != last_state:
                    self.ctx.ui.info(f"Status has been changed: {request.raw_state}, reason: {request.fault}")
                    last_state = request.raw_state

                if request.state in WAITING_STATES:
                    log.debug("Spot request %s is %s, waiting", request.id, request.raw_state)
                elif request.state is SpotState.ACTIVE:
                    return request, True
                elif request.state in FAILED_STATES:
                    log.error("Spot request %s is %s, aborting", request.id, request.raw_state)
                    return request, False
                else:
                    log.debug("Unknown spot state %s for %s, waiting", request.raw_state, request.id)

            if self.max_polls is not None and polls >= self.max_polls:
                log.warning("Spot request %s unresolved after %d polls, giving up", request.id, self.max_polls)
                return request, False

    def run(self):
        """Returns the Instance the spot request was fulfilled with, or None."""
        request = self.submit()
        compute = self.ctx.compute
        try:
            request, succeeded = self.poll(request)
        except Exception:
            # cancel anyway, but keep the polling error as the one that surfaces
            try:
                compute.cancel_spot_instance_requests(request.id)
            except ClientError as e:
                log.error("Could not cancel spot request %s: %s", request.id, e)
            raise
        compute.cancel_spot_instance_requests(request.id)

        if not succeeded:
            log.info("Spot request %s did not succeed (%s)", request.id, request.raw_state)
        if request.instance_id:
            return compute.get_instance(request.instance_id)
        return None
