"""Rancher machine driver.

Implements the docker-machine driver operations on top of the Rancher API:
environment selection, provisioning, state queries and power actions.
"""

import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, List, Mapping, Any, Optional, Union

from rancher_machine.clients.rancher import (
    RancherAPIError,
    RancherClient,
    RancherOperations,
)
from rancher_machine.config import settings
from rancher_machine.core.exceptions import (
    ConfigurationError,
    DriverError,
    HostNotRunningError,
    IPNotSetError,
    ProjectSelectionError,
    ProvisioningTimeoutError,
)
from rancher_machine.core.ssh import generate_ssh_key, read_public_key
from rancher_machine.flags import CREATE_FLAGS, CreateFlag
from rancher_machine.models.state import MachineState, RemoteStatus
from rancher_machine.schemas.driver import (
    DEFAULT_SSH_PORT,
    DriverConfig,
    DriverRecord,
)
from rancher_machine.schemas.rancher import (
    InstanceStop,
    Project,
    VirtualMachine,
    VirtualMachineCreate,
)
from rancher_machine.utils.context import operation_context, set_context
from rancher_machine.utils.logger import get_logger
from rancher_machine.utils.telemetry import (
    add_span_attributes,
    add_span_event,
    trace_operation,
)
from rancher_machine.utils.wait import wait_for

logger = get_logger(__name__)

DRIVER_NAME = "rancher"
DOCKER_PORT = 2376
IMAGE_SCHEME = "docker:"
PROJECT_LIST_LIMIT = 2

ClientFactory = Callable[[str, str, str], RancherOperations]


def build_user_data(public_key: str) -> str:
    """Cloud-init user data authorizing a single SSH public key."""
    return f'#cloud-config\nssh_authorized_keys:\n  - "{public_key}"\n'


def _is_ready(machine: VirtualMachine) -> bool:
    return machine.status is RemoteStatus.RUNNING and bool(machine.ip_address)


class RancherDriver:
    """Driver for one docker-machine host backed by a Rancher VM."""

    def __init__(
        self,
        machine_name: str,
        store_path: Union[str, Path],
        client_factory: ClientFactory = RancherClient,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: Optional[float] = None,
        create_timeout: Optional[float] = None,
    ):
        """
        Initialize driver.

        Args:
            machine_name: Local machine name, also used as the VM name
            store_path: Root of the machine store
            client_factory: Builds a Rancher client from (url, access key, secret key)
            sleep: Sleep function used between provisioning polls
            clock: Monotonic clock used for the provisioning deadline
            poll_interval: Seconds between polls, defaults to settings
            create_timeout: Provisioning deadline in seconds (0 waits forever)
        """
        self.machine_name = machine_name
        self.store_path = Path(store_path)
        self.client_factory = client_factory
        self.sleep = sleep
        self.clock = clock
        self.poll_interval = (
            settings.RANCHER_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self.create_timeout = (
            settings.RANCHER_CREATE_TIMEOUT
            if create_timeout is None
            else create_timeout
        )

        self.config: Optional[DriverConfig] = None
        self.machine_id = ""
        self.ip_address = ""
        self.ssh_port = DEFAULT_SSH_PORT

        self._client: Optional[RancherOperations] = None

    # Identity and configuration

    def driver_name(self) -> str:
        return DRIVER_NAME

    def get_create_flags(self) -> List[CreateFlag]:
        return list(CREATE_FLAGS)

    def set_config_from_flags(self, options: Mapping[str, Any]) -> None:
        """
        Populate the configuration from resolved flag values.

        No network or disk access happens here.

        Raises:
            ConfigurationError: If a required option is missing or invalid
        """
        self.config = DriverConfig.from_flags(options)
        self._invalidate_client()
        logger.debug(
            "Driver configured",
            extra={
                "url": self.config.url,
                "os_image": self.config.os_image,
                "memory_mb": self.config.memory_mb,
                "vcpu": self.config.vcpu,
            },
        )

    def _require_config(self) -> DriverConfig:
        if self.config is None:
            raise ConfigurationError("Rancher driver is not configured")
        return self.config

    # Remote handle

    def connect(self) -> RancherOperations:
        """
        Return the cached Rancher client, building and checking it if needed.

        Raises:
            ConfigurationError: If the driver has no configuration
            RancherError: If the API cannot be reached with the configured keys
        """
        if self._client is None:
            config = self._require_config()
            client = self.client_factory(
                config.url, config.access_key, config.secret_key
            )
            try:
                client.connect()
            except Exception:
                client.close()
                raise
            self._client = client
        return self._client

    def _invalidate_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def close(self) -> None:
        """Release the remote handle."""
        self._invalidate_client()

    @contextmanager
    def _operation(self, action: str):
        with trace_operation(
            f"driver.{action}",
            {
                "machine.name": self.machine_name,
                "machine.id": self.machine_id or None,
            },
        ):
            with operation_context(
                f"machine.{action}",
                machine_name=self.machine_name,
                machine_id=self.machine_id or None,
            ):
                yield

    # Environment selection

    def pre_create_check(self) -> None:
        """
        Select the Rancher environment and scope the driver URL to it.

        Raises:
            ProjectSelectionError: If no single environment matches
            RancherError: If the API calls fail
        """
        with self._operation("pre_create_check"):
            self.connect()
            project = self.select_project()

            url = project.links.get("self")
            if not url:
                raise ProjectSelectionError(
                    f"Environment '{project.id}' does not advertise its URL"
                )

            self._invalidate_client()
            self.config = self._require_config().with_url(url)
            set_context(project_id=project.id)
            add_span_attributes(**{"rancher.project_id": project.id})
            logger.debug("Set URL to %s", url)

            self.connect()

    def select_project(self) -> Project:
        """
        Resolve the environment to create the machine in.

        An explicit id wins, then an exact name, then the only environment
        the keys can see.

        Raises:
            ProjectSelectionError: If zero or several environments match
        """
        config = self._require_config()
        client = self.connect()

        if config.project_id:
            try:
                return client.get_project(config.project_id)
            except RancherAPIError as e:
                if e.status_code != 404:
                    raise
                raise ProjectSelectionError(
                    f"No Environment with id '{config.project_id}' was found, "
                    "check URL and API key"
                ) from e

        if config.project_name:
            projects = client.list_projects(
                {
                    "name": config.project_name,
                    "state_ne": "removed",
                    "limit": PROJECT_LIST_LIMIT,
                }
            )
            if len(projects.data) > 1:
                raise ProjectSelectionError(
                    f"There is more than one Environment named "
                    f"'{config.project_name}', use --rancher-project-id to choose one"
                )
            if not projects.data:
                raise ProjectSelectionError(
                    f"No Environment named '{config.project_name}' was found, "
                    "check URL and API key"
                )
            return projects.data[0]

        projects = client.list_projects(
            {"state_ne": "removed", "limit": PROJECT_LIST_LIMIT}
        )
        if len(projects.data) > 1:
            raise ProjectSelectionError(
                "The supplied API Key has access to more than one Environment, "
                "use --rancher-project-id to choose one"
            )
        if not projects.data:
            raise ProjectSelectionError("No Environments found, check URL and API key")
        return projects.data[0]

    # Provisioning

    def create(self) -> None:
        """
        Create the VM and block until it is running with an IP address.

        Raises:
            SSHKeyError: If the machine key cannot be created or read
            RancherError: If a create or fetch request fails
            ProvisioningTimeoutError: If the VM is not ready before the deadline
        """
        with self._operation("create"):
            config = self._require_config()

            logger.debug("Generating SSH key...")
            public_key = self._create_ssh_key()
            userdata = build_user_data(public_key)

            logger.info("Creating Rancher VM...")
            logger.info("Using the following Cloud-init User Data:")
            logger.info("%s", userdata)

            client = self.connect()
            machine = client.create_virtual_machine(
                VirtualMachineCreate(
                    name=self.machine_name,
                    image_uuid=IMAGE_SCHEME + config.os_image,
                    memory_mb=config.memory_mb,
                    vcpu=config.vcpu,
                    userdata=userdata,
                )
            )

            self.machine_id = machine.id
            set_context(machine_id=machine.id)
            add_span_attributes(**{"machine.id": machine.id})

            logger.info(
                "Waiting for VM to become available",
                extra={"machine_id": self.machine_id},
            )
            try:
                wait_for(
                    self._refresh_machine,
                    _is_ready,
                    timeout=self.create_timeout,
                    interval=self.poll_interval,
                    sleep=self.sleep,
                    clock=self.clock,
                    on_wait=self._log_not_ready,
                    description=f"VM {self.machine_id}",
                )
            except TimeoutError as e:
                raise ProvisioningTimeoutError(
                    f"VM {self.machine_id} did not become available within "
                    f"{self.create_timeout:.0f}s"
                ) from e

            add_span_event("machine.ready", {"ip": self.ip_address})
            logger.info(
                "Created Rancher VM",
                extra={"machine_id": self.machine_id, "ip": self.ip_address},
            )

    def _create_ssh_key(self) -> str:
        key_path = self.get_ssh_key_path()
        generate_ssh_key(key_path)
        return read_public_key(key_path)

    def _log_not_ready(self, machine: VirtualMachine) -> None:
        logger.info(
            "VM not yet available",
            extra={"state": machine.state, "ip": machine.ip_address},
        )

    def _get_machine(self) -> VirtualMachine:
        if not self.machine_id:
            raise DriverError("Rancher VM id is not set, was the machine created?")
        return self.connect().get_virtual_machine(self.machine_id)

    def _refresh_machine(self) -> VirtualMachine:
        machine = self._get_machine()
        self.ip_address = machine.ip_address
        return machine

    # State

    def get_state(self) -> MachineState:
        """
        Fetch the VM and return its canonical state.

        Fetch errors propagate unchanged; callers report them as an error state.
        """
        with self._operation("get_state"):
            machine = self._refresh_machine()
            state = machine.machine_state
            add_span_attributes(**{"machine.state": state.value})
            return state

    def get_ip(self) -> str:
        """
        Return the cached IP address.

        Raises:
            IPNotSetError: If no IP has been assigned yet
        """
        if not self.ip_address or self.ip_address == "0":
            raise IPNotSetError()
        return self.ip_address

    def get_url(self) -> str:
        """
        Return the Docker endpoint of the machine.

        Raises:
            HostNotRunningError: If the machine is not running
        """
        if self.get_state() is not MachineState.RUNNING:
            raise HostNotRunningError()
        return self.docker_url()

    def docker_url(self) -> str:
        """Docker TLS endpoint for the cached IP, without a state check."""
        return f"tcp://{self.get_ip()}:{DOCKER_PORT}"

    # SSH access

    def get_ssh_hostname(self) -> str:
        return self.get_ip()

    def get_ssh_username(self) -> str:
        return self._require_config().os_user

    def get_ssh_port(self) -> int:
        return self.ssh_port

    def get_ssh_key_path(self) -> Path:
        return self.store_path / "machines" / self.machine_name / "id_rsa"

    # Power actions

    def start(self) -> None:
        with self._operation("start"):
            machine = self._get_machine()
            logger.info(f"Starting {self.machine_name}")
            self.connect().action(machine, "start")

    def stop(self) -> None:
        with self._operation("stop"):
            machine = self._get_machine()
            logger.info(f"Stopping {self.machine_name}")
            self.connect().action(machine, "stop", InstanceStop())

    def restart(self) -> None:
        with self._operation("restart"):
            machine = self._get_machine()
            logger.info(f"Restarting {self.machine_name}")
            self.connect().action(machine, "restart")

    def kill(self) -> None:
        """Rancher has no forced power off; kill is a regular stop."""
        self.stop()

    def remove(self) -> None:
        with self._operation("remove"):
            machine = self._get_machine()
            logger.info(f"Removing {self.machine_name}")
            self.connect().delete_virtual_machine(machine)

    # Persistence

    def to_record(self) -> DriverRecord:
        return DriverRecord(
            driver_name=DRIVER_NAME,
            machine_name=self.machine_name,
            config=self.config,
            machine_id=self.machine_id,
            ip_address=self.ip_address,
            ssh_port=self.ssh_port,
        )

    @classmethod
    def from_record(
        cls, record: DriverRecord, store_path: Union[str, Path], **kwargs: Any
    ) -> "RancherDriver":
        """Restore a driver saved with :meth:`to_record`."""
        driver = cls(record.machine_name, store_path, **kwargs)
        driver.config = record.config
        driver.machine_id = record.machine_id
        driver.ip_address = record.ip_address
        driver.ssh_port = record.ssh_port
        return driver
