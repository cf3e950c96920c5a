"""Custom exceptions for the driver."""


class DriverError(Exception):
    """Base class for errors raised by the driver itself."""

    def __init__(self, detail: str = "Driver error"):
        super().__init__(detail)
        self.detail = detail


class ConfigurationError(DriverError):
    """Exception raised when the driver options are missing or invalid."""

    def __init__(self, detail: str = "Invalid driver configuration"):
        super().__init__(detail)


class ProjectSelectionError(ConfigurationError):
    """Exception raised when no single Rancher environment can be selected."""

    def __init__(self, detail: str = "Unable to select a Rancher environment"):
        super().__init__(detail)


class HostNotRunningError(DriverError):
    """Exception raised when an endpoint is requested from a stopped host."""

    def __init__(self, detail: str = "Host is not running"):
        super().__init__(detail)


class IPNotSetError(DriverError):
    """Exception raised when the machine has no usable IP address yet."""

    def __init__(self, detail: str = "IP address is not set"):
        super().__init__(detail)


class ProvisioningTimeoutError(DriverError):
    """Exception raised when a new machine does not become ready in time."""

    def __init__(self, detail: str = "Timed out waiting for the VM"):
        super().__init__(detail)


class MachineNotFoundError(DriverError):
    """Exception raised when no machine with that name exists in the store."""

    def __init__(self, detail: str = "Machine not found"):
        super().__init__(detail)


class SSHKeyError(DriverError):
    """Exception raised when the machine SSH key cannot be created or read."""

    def __init__(self, detail: str = "SSH key error"):
        super().__init__(detail)
