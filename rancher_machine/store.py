"""Local machine store.

Follows docker-machine's layout: every machine owns
``<root>/machines/<name>/`` holding ``config.json`` and its SSH key pair.
"""

import shutil
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from rancher_machine.core.exceptions import DriverError, MachineNotFoundError
from rancher_machine.schemas.driver import DriverRecord
from rancher_machine.services.driver import RancherDriver
from rancher_machine.utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_FILE = "config.json"


class MachineStore:
    """Persists driver records between command invocations."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    @property
    def machines_dir(self) -> Path:
        return self.root / "machines"

    def machine_dir(self, name: str) -> Path:
        return self.machines_dir / name

    def exists(self, name: str) -> bool:
        return (self.machine_dir(name) / CONFIG_FILE).is_file()

    def save(self, driver: RancherDriver) -> Path:
        """Write the driver record, returning the config path."""
        path = self.machine_dir(driver.machine_name) / CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(driver.to_record().model_dump_json(indent=2))
        path.chmod(0o600)
        logger.debug("Machine saved", extra={"path": str(path)})
        return path

    def load_record(self, name: str) -> DriverRecord:
        """
        Read a stored record.

        Raises:
            MachineNotFoundError: If the machine does not exist
            DriverError: If the stored record cannot be parsed
        """
        path = self.machine_dir(name) / CONFIG_FILE
        if not path.is_file():
            raise MachineNotFoundError(f"Host does not exist: \"{name}\"")
        try:
            return DriverRecord.model_validate_json(path.read_text())
        except ValidationError as e:
            raise DriverError(f"Invalid machine config {path}: {e}") from e

    def load(self, name: str, **driver_kwargs: Any) -> RancherDriver:
        """Restore the driver of a stored machine."""
        record = self.load_record(name)
        return RancherDriver.from_record(record, self.root, **driver_kwargs)

    def remove(self, name: str) -> None:
        """Delete the machine directory, keys included."""
        shutil.rmtree(self.machine_dir(name), ignore_errors=True)
        logger.debug("Machine directory removed", extra={"machine_name": name})

    def list(self) -> List[str]:
        """Names of all stored machines, sorted."""
        if not self.machines_dir.is_dir():
            return []
        return sorted(
            path.name
            for path in self.machines_dir.iterdir()
            if (path / CONFIG_FILE).is_file()
        )
