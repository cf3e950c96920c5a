"""Create flags accepted by the driver.

The table is the single source for flag names, environment fallbacks and
defaults; :func:`resolve_options` turns command line values into the flat
option mapping :meth:`DriverConfig.from_flags` consumes.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from rancher_machine.schemas.driver import (
    DEFAULT_MEMORY_MB,
    DEFAULT_OS_IMAGE,
    DEFAULT_OS_USER,
    DEFAULT_VCPU,
)


@dataclass(frozen=True)
class CreateFlag:
    """A single ``create`` option."""

    name: str
    envvar: str
    usage: str
    default: Optional[Any] = None

    @property
    def dest(self) -> str:
        """Keyword form of the flag name, e.g. ``rancher_os_image``."""
        return self.name.replace("-", "_")


CREATE_FLAGS: List[CreateFlag] = [
    CreateFlag("rancher-url", "RANCHER_URL", "Rancher Environment URL"),
    CreateFlag("rancher-access-key", "RANCHER_ACCESS_KEY", "Rancher Access Key"),
    CreateFlag("rancher-secret-key", "RANCHER_SECRET_KEY", "Rancher Secret Key"),
    CreateFlag(
        "rancher-project-name",
        "RANCHER_ENVIRONMENT_NAME",
        "Rancher Environment Name",
    ),
    CreateFlag(
        "rancher-project-id",
        "RANCHER_ENVIRONMENT_ID",
        "Rancher Environment ID",
    ),
    CreateFlag(
        "rancher-os-image",
        "RANCHER_OS_IMAGE",
        f"Rancher OS Image.  Default: {DEFAULT_OS_IMAGE}",
        DEFAULT_OS_IMAGE,
    ),
    CreateFlag(
        "rancher-os-user",
        "RANCHER_OS_USER",
        f"Rancher OS User.  Default: {DEFAULT_OS_USER}",
        DEFAULT_OS_USER,
    ),
    CreateFlag(
        "rancher-memory-mb",
        "RANCHER_MEMORY_MB",
        f"Memory in MiB. Default: {DEFAULT_MEMORY_MB}",
        DEFAULT_MEMORY_MB,
    ),
    CreateFlag(
        "rancher-vcpu",
        "RANCHER_VCPU",
        f"Number of virtual CPUs. Default: {DEFAULT_VCPU}",
        DEFAULT_VCPU,
    ),
]


def get_flag(name: str) -> CreateFlag:
    """Look up a flag by name."""
    for flag in CREATE_FLAGS:
        if flag.name == name:
            return flag
    raise KeyError(name)


def resolve_options(
    values: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Resolve every create flag: explicit value, then environment, then default.

    Args:
        values: Explicit values keyed by flag name or dest; None means unset
        environ: Environment to fall back to, defaults to ``os.environ``

    Returns:
        Mapping of flag name to resolved value (None when nothing applies)
    """
    if environ is None:
        environ = os.environ

    options: Dict[str, Any] = {}
    for flag in CREATE_FLAGS:
        value = values.get(flag.name, values.get(flag.dest))
        if value is None:
            value = environ.get(flag.envvar) or None
        if value is None:
            value = flag.default
        options[flag.name] = value
    return options
