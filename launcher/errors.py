# launcher/errors.py


class LauncherError(Exception):
    """Base class for errors the launch pipeline reports itself."""


class ConfigError(LauncherError):
    pass


class SubnetNotFound(LauncherError):
    def __init__(self, subnet_id):
        self.subnet_id = subnet_id
        super().__init__(f"Subnet ID not found: {subnet_id}")


class ProviderError(LauncherError):
    def __init__(self, message):
        self.message = message
        super().__init__(f"Provider error: {message}")


class InstanceReadyTimeout(LauncherError):
    def __init__(self, timeout):
        self.timeout = timeout
        super().__init__(
            f"The instance never became ready within {timeout} seconds. "
            "It has been terminated; raise instance_ready_timeout if it needs longer to boot."
        )
