"""Schemas for the driver configuration and its persisted record."""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from rancher_machine.core.exceptions import ConfigurationError

DEFAULT_OS_IMAGE = "rancher/vm-ubuntu"
DEFAULT_OS_USER = "ubuntu"
DEFAULT_MEMORY_MB = 1024
DEFAULT_VCPU = 2
DEFAULT_SSH_PORT = 22

_SIZE_DEFAULTS = {"memory_mb": DEFAULT_MEMORY_MB, "vcpu": DEFAULT_VCPU}


def _parse_size(options: Mapping[str, Any], flag: str) -> Optional[int]:
    """Read an integer sizing option, None when unset."""
    value = options.get(flag)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid value for --{flag}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for --{flag}: {value!r}") from e


class DriverConfig(BaseModel):
    """Connection, sizing and environment options of one machine.

    Immutable once built; the only change over a machine's life is the
    project-scoped URL set by :meth:`with_url`.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1)
    access_key: str = Field(min_length=1)
    secret_key: str = Field(min_length=1, repr=False)

    os_image: str = DEFAULT_OS_IMAGE
    os_user: str = DEFAULT_OS_USER
    memory_mb: int = DEFAULT_MEMORY_MB
    vcpu: int = DEFAULT_VCPU

    project_name: Optional[str] = None
    project_id: Optional[str] = None

    @field_validator("os_image", mode="before")
    @classmethod
    def default_os_image(cls, v: Any) -> Any:
        return v or DEFAULT_OS_IMAGE

    @field_validator("os_user", mode="before")
    @classmethod
    def default_os_user(cls, v: Any) -> Any:
        return v or DEFAULT_OS_USER

    @field_validator("memory_mb", "vcpu", mode="before")
    @classmethod
    def unset_size(cls, v: Any, info: ValidationInfo) -> Any:
        """Fall back to the default for unset sizing options."""
        if v is None or v == "":
            return _SIZE_DEFAULTS[info.field_name]
        return v

    @field_validator("memory_mb", "vcpu", mode="after")
    @classmethod
    def non_positive_size(cls, v: int, info: ValidationInfo) -> int:
        """Fall back to the default for non-positive sizing options."""
        if v <= 0:
            return _SIZE_DEFAULTS[info.field_name]
        return v

    @field_validator("project_name", "project_id", mode="before")
    @classmethod
    def empty_as_none(cls, v: Any) -> Any:
        return v or None

    @classmethod
    def from_flags(cls, options: Mapping[str, Any]) -> "DriverConfig":
        """Build the config from resolved create flag values.

        Raises:
            ConfigurationError: If the URL or either key is missing, or a
                sizing option is not an integer
        """
        for flag in ("rancher-url", "rancher-access-key", "rancher-secret-key"):
            if not options.get(flag):
                raise ConfigurationError(
                    f"Rancher driver requires the --{flag} option"
                )

        return cls(
            url=options["rancher-url"],
            access_key=options["rancher-access-key"],
            secret_key=options["rancher-secret-key"],
            os_image=options.get("rancher-os-image"),
            os_user=options.get("rancher-os-user"),
            memory_mb=_parse_size(options, "rancher-memory-mb"),
            vcpu=_parse_size(options, "rancher-vcpu"),
            project_name=options.get("rancher-project-name"),
            project_id=options.get("rancher-project-id"),
        )

    def with_url(self, url: str) -> "DriverConfig":
        """Return a copy targeting another (project-scoped) URL."""
        return self.model_copy(update={"url": url})


class DriverRecord(BaseModel):
    """Serialisable driver state kept in the machine store."""

    driver_name: str = "rancher"
    machine_name: str
    config: Optional[DriverConfig] = None
    machine_id: str = ""
    ip_address: str = ""
    ssh_port: int = DEFAULT_SSH_PORT
