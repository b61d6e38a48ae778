# launcher/context.py
from dataclasses import dataclass, field

from launcher.compute import NOT_CREATED
from launcher.launch_spec import LaunchSpec


@dataclass
class MachineRecord:
    name: str = "default"
    id: str | None = None


@dataclass
class ProvisioningContext:
    """
    State shared by every action of one provisioning run.

    `interrupted` is flipped from outside (SIGINT) and only read between waits.
    """
    spec: LaunchSpec
    compute: object
    ui: object
    action_runner: object
    remote: object = None
    machine: MachineRecord = field(default_factory=MachineRecord)
    metrics: dict = field(default_factory=dict)
    interrupted: bool = False
    force_confirm_destroy: bool = False
    config_validate: bool = True
    error: BaseException | None = None

    def machine_state(self) -> str:
        if self.machine.id is None:
            return NOT_CREATED
        return self.compute.instance_state(self.machine.id)
