"""Client for the Rancher v1 API with logging and tracing."""

from typing import Any, Dict, Mapping, Optional, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from rancher_machine.config import settings
from rancher_machine.schemas.rancher import (
    Collection,
    Project,
    VirtualMachine,
    VirtualMachineCreate,
)
from rancher_machine.utils.logger import get_logger, log_timer
from rancher_machine.utils.telemetry import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer()

ModelT = TypeVar("ModelT", bound=BaseModel)


class RancherError(Exception):
    """Rancher API error."""

    pass


class RancherAPIError(RancherError):
    """Error response returned by the Rancher API."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.detail = detail


class RancherOperations(Protocol):
    """The Rancher operations the driver depends on."""

    def connect(self) -> Dict[str, Any]: ...

    def get_project(self, project_id: str) -> Project: ...

    def list_projects(self, filters: Mapping[str, Any]) -> Collection[Project]: ...

    def create_virtual_machine(self, body: VirtualMachineCreate) -> VirtualMachine: ...

    def get_virtual_machine(self, machine_id: str) -> VirtualMachine: ...

    def action(
        self, machine: VirtualMachine, name: str, body: Optional[BaseModel] = None
    ) -> VirtualMachine: ...

    def delete_virtual_machine(self, machine: VirtualMachine) -> None: ...

    def close(self) -> None: ...


class RancherClient:
    """Synchronous client for a Rancher environment (or account) URL."""

    def __init__(
        self,
        url: str,
        access_key: str,
        secret_key: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            url: Rancher API URL, e.g. https://rancher.example/v1/projects/1a5
            access_key: API access key
            secret_key: API secret key
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = url.rstrip("/")
        self.client = httpx.Client(
            auth=(access_key, secret_key),
            headers={"Accept": "application/json"},
            timeout=timeout if timeout is not None else settings.RANCHER_HTTP_TIMEOUT,
            transport=transport,
        )

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Send a request and decode the JSON body.

        Raises:
            RancherAPIError: If Rancher answers with an error status
            RancherError: If the request cannot be sent
        """
        with tracer.start_as_current_span(f"rancher.{operation}") as span:
            add_span_attributes(
                **{
                    "rancher.operation": operation,
                    "http.method": method,
                    "http.url": url,
                }
            )

            try:
                with log_timer(f"rancher_{operation}", logger):
                    response = self.client.request(method, url, **kwargs)
                    response.raise_for_status()

            except httpx.HTTPStatusError as e:
                error = _api_error(e.response, url)
                logger.error(
                    "Rancher API request failed",
                    extra={
                        "operation": operation,
                        "status_code": e.response.status_code,
                        "error": error.detail,
                        "error_type": "HTTPStatusError",
                    },
                )
                span.record_exception(e)
                raise error from e

            except httpx.RequestError as e:
                error_msg = f"Rancher API request failed: {str(e)}"
                logger.error(
                    "Rancher API request failed",
                    extra={
                        "operation": operation,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                span.record_exception(e)
                raise RancherError(error_msg) from e

            add_span_attributes(**{"http.status_code": response.status_code})

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                span.record_exception(e)
                raise RancherError(
                    f"Invalid JSON in Rancher response from [{url}]"
                ) from e

    def _parse(self, model: Type[ModelT], data: Any, url: str) -> ModelT:
        """
        Validate a decoded response body.

        Raises:
            RancherError: If the body does not have the expected shape
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(
                "Unexpected Rancher response",
                extra={"url": url, "model": model.__name__, "error": str(e)},
            )
            raise RancherError(f"Unexpected Rancher response from [{url}]") from e

    def connect(self) -> Dict[str, Any]:
        """
        Check the URL and credentials by fetching the API root.

        Returns:
            The API root document

        Raises:
            RancherError: If the API is unreachable or rejects the keys
        """
        logger.debug("Connecting to Rancher", extra={"url": self.base_url})
        return self._request("GET", self.base_url, "connect")

    def get_project(self, project_id: str) -> Project:
        """Fetch a single environment by id."""
        url = f"{self.base_url}/projects/{project_id}"
        data = self._request("GET", url, "get_project")
        return self._parse(Project, data, url)

    def list_projects(self, filters: Mapping[str, Any]) -> Collection[Project]:
        """
        List environments.

        Args:
            filters: Query filters, e.g. {"name": "dev", "state_ne": "removed"}
        """
        url = f"{self.base_url}/projects"
        data = self._request(
            "GET",
            url,
            "list_projects",
            params={key: str(value) for key, value in filters.items()},
        )
        return self._parse(Collection[Project], data, url)

    def create_virtual_machine(self, body: VirtualMachineCreate) -> VirtualMachine:
        """Submit a create virtual machine request."""
        url = f"{self.base_url}/virtualmachines"
        data = self._request(
            "POST",
            url,
            "create_virtual_machine",
            json=body.model_dump(by_alias=True),
        )
        return self._parse(VirtualMachine, data, url)

    def get_virtual_machine(self, machine_id: str) -> VirtualMachine:
        """Fetch a virtual machine by id."""
        url = f"{self.base_url}/virtualmachines/{machine_id}"
        data = self._request("GET", url, "get_virtual_machine")
        return self._parse(VirtualMachine, data, url)

    def action(
        self, machine: VirtualMachine, name: str, body: Optional[BaseModel] = None
    ) -> VirtualMachine:
        """
        Invoke an action (start, stop, restart, ...) on a virtual machine.

        The link advertised in the resource's ``actions`` is preferred; the
        conventional ``?action=`` URL is used when the resource carries none.
        """
        url = machine.actions.get(name) or (
            f"{self.base_url}/virtualmachines/{machine.id}?action={name}"
        )
        payload = (
            body.model_dump(by_alias=True, exclude_none=True)
            if body is not None
            else None
        )
        data = self._request("POST", url, f"action_{name}", json=payload)
        if not data:
            return machine
        return self._parse(VirtualMachine, data, url)

    def delete_virtual_machine(self, machine: VirtualMachine) -> None:
        """Delete a virtual machine through its self link."""
        url = machine.links.get("self") or (
            f"{self.base_url}/virtualmachines/{machine.id}"
        )
        self._request("DELETE", url, "delete_virtual_machine")

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "RancherClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _api_error(response: httpx.Response, url: str) -> RancherAPIError:
    """Build an error from a Rancher error response, keeping its text verbatim."""
    code = None
    detail = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        detail = body.get("message") or body.get("detail") or detail

    message = (
        f"Bad response statusCode [{response.status_code}]. "
        f"Status [{response.status_code} {response.reason_phrase}]. "
        f"Body: [{response.text}] from [{url}]"
    )
    return RancherAPIError(message, response.status_code, code=code, detail=detail)
