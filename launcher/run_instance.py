# launcher/run_instance.py
import logging

from botocore.exceptions import ClientError

from launcher import rollback
from launcher.errors import InstanceReadyTimeout, ProviderError, SubnetNotFound
from launcher.launch_spec import build_launch_options
from launcher.pipeline import ValidateConfig
from launcher.readiness import ReadinessGate, WaitOutcome
from launcher.spot import SpotRequestPoller

log = logging.getLogger("launcher.run_instance")

SUBNET_NOT_FOUND_CODE = "InvalidSubnetID.NotFound"


def _is_subnet_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    message = error.response.get("Error", {}).get("Message", "")
    if code == SUBNET_NOT_FOUND_CODE:
        return True
    # fallback for responses without the dedicated code
    return code.endswith(".NotFound") and "subnet ID" in message


class RunInstance:
    """Launches the configured instance and waits until it can be used."""

    def __init__(self, app):
        self.app = app

    def __call__(self, ctx):
        spec = ctx.spec
        ui = ctx.ui

        if not spec.keypair_name:
            ui.warn("Launching an instance with no keypair specified. SSH access may not be possible.")
        if spec.subnet_id:
            ui.warn("Launching into a VPC: make sure the subnet assigns a public IP or that you connect over the private address.")

        self._print_summary(ctx)

        if spec.spot_instance:
            instance = SpotRequestPoller(ctx, max_polls=spec.spot_max_polls).run()
        else:
            instance = self.launch_on_demand(ctx)

        if instance is not None:
            # record the id straight away so a failed wait can still be rolled back
            ctx.machine.id = instance.id
            log.info("Machine %s is instance %s", ctx.machine.name, instance.id)
            self.wait_ready(ctx, instance)
        else:
            log.warning("No instance was launched for machine %s", ctx.machine.name)

        return self.app(ctx)

    def _print_summary(self, ctx):
        spec = ctx.spec
        ui = ctx.ui
        ui.info("Launching an instance with the following settings...")
        ui.info(f" -- Type: {spec.instance_type}")
        ui.info(f" -- AMI: {spec.ami}")
        ui.info(f" -- Region: {spec.region}")
        if spec.availability_zone:
            ui.info(f" -- Availability Zone: {spec.availability_zone}")
        if spec.keypair_name:
            ui.info(f" -- Keypair: {spec.keypair_name}")
        if spec.subnet_id:
            ui.info(f" -- Subnet ID: {spec.subnet_id}")
        if spec.private_ip_address:
            ui.info(f" -- Private IP: {spec.private_ip_address}")
        if spec.user_data:
            ui.info(" -- User Data: yes")
        if spec.security_groups:
            ui.info(f" -- Security Groups: {list(spec.security_groups)}")
        if spec.block_device_mapping:
            ui.info(f" -- Block Device Mapping: {list(spec.block_device_mapping)}")

    def launch_on_demand(self, ctx):
        options = build_launch_options(ctx.spec)
        try:
            return ctx.compute.create_instance(options)
        except ClientError as e:
            if _is_subnet_not_found(e):
                raise SubnetNotFound(ctx.spec.subnet_id) from e
            if e.response.get("Error", {}).get("Code", "").endswith(".NotFound"):
                raise
            raise ProviderError(e.response.get("Error", {}).get("Message", str(e))) from e

    def wait_ready(self, ctx, instance):
        outcome = ReadinessGate(ctx).wait(instance)
        log.info("Readiness of %s: %s (metrics %s)", instance.id, outcome.value, ctx.metrics)

        if outcome is WaitOutcome.TIMED_OUT:
            rollback.terminate(ctx)
            raise InstanceReadyTimeout(ctx.spec.instance_ready_timeout)
        if outcome is WaitOutcome.INTERRUPTED:
            rollback.terminate(ctx)

    def recover(self, ctx):
        rollback.recover(ctx)


LAUNCH = [ValidateConfig, RunInstance]
