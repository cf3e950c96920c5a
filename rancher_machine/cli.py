"""Command line entry point.

Plays the docker-machine host role for the Rancher driver: each command
loads the machine from the local store, runs one driver operation and saves
the machine back.
"""

import json
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer
from tabulate import tabulate

from rancher_machine import __version__
from rancher_machine.clients.rancher import RancherError
from rancher_machine.config import settings
from rancher_machine.core.exceptions import DriverError
from rancher_machine.flags import CREATE_FLAGS, get_flag, resolve_options
from rancher_machine.models.state import MachineState
from rancher_machine.services.driver import DRIVER_NAME, RancherDriver
from rancher_machine.store import MachineStore
from rancher_machine.utils.logger import get_logger, setup_logging
from rancher_machine.utils.telemetry import setup_telemetry

logger = get_logger(__name__)

app = typer.Typer(no_args_is_help=True, help="Rancher driver for Docker Machine.")

SECRET_MASK = "********"


def _flag_option(name: str) -> Any:
    flag = get_flag(name)
    return typer.Option(
        None,
        f"--{flag.name}",
        help=f"{flag.usage} [env: {flag.envvar}]",
        show_default=False,
    )


def _store(ctx: typer.Context) -> MachineStore:
    return ctx.obj["store"]


def _driver_options(ctx: typer.Context) -> Dict[str, Any]:
    """Keyword arguments for every RancherDriver built by this invocation."""
    return ctx.obj["driver_options"]


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1)


def _load(ctx: typer.Context, name: str) -> RancherDriver:
    try:
        return _store(ctx).load(name, **_driver_options(ctx))
    except DriverError as e:
        _fail(e)


@app.callback()
def main(
    ctx: typer.Context,
    storage_path: Optional[Path] = typer.Option(
        None,
        "--storage-path",
        "-s",
        help="Machine store directory [env: MACHINE_STORAGE_PATH]",
    ),
    debug: bool = typer.Option(False, "--debug", "-D", help="Enable debug logging"),
):
    setup_logging(level="DEBUG" if debug else None)
    setup_telemetry()
    root = storage_path.expanduser() if storage_path else settings.MACHINE_STORAGE_PATH
    ctx.ensure_object(dict)
    ctx.obj.setdefault("driver_options", {})
    ctx.obj["store"] = MachineStore(root)


@app.command(help="Show the version of the driver")
def version():
    typer.echo(__version__)


@app.command(help="List the create flags and their environment variables")
def flags():
    rows = [
        [
            f"--{flag.name}",
            flag.envvar,
            "" if flag.default is None else flag.default,
            flag.usage,
        ]
        for flag in CREATE_FLAGS
    ]
    typer.echo(tabulate(rows, headers=["FLAG", "ENV", "DEFAULT", "USAGE"]))


@app.command(help="Create a machine")
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Machine name"),
    rancher_url: Optional[str] = _flag_option("rancher-url"),
    rancher_access_key: Optional[str] = _flag_option("rancher-access-key"),
    rancher_secret_key: Optional[str] = _flag_option("rancher-secret-key"),
    rancher_project_name: Optional[str] = _flag_option("rancher-project-name"),
    rancher_project_id: Optional[str] = _flag_option("rancher-project-id"),
    rancher_os_image: Optional[str] = _flag_option("rancher-os-image"),
    rancher_os_user: Optional[str] = _flag_option("rancher-os-user"),
    rancher_memory_mb: Optional[int] = _flag_option("rancher-memory-mb"),
    rancher_vcpu: Optional[int] = _flag_option("rancher-vcpu"),
):
    store = _store(ctx)
    if store.exists(name):
        _fail(DriverError(f'Host already exists: "{name}"'))

    options = resolve_options(
        {
            "rancher-url": rancher_url,
            "rancher-access-key": rancher_access_key,
            "rancher-secret-key": rancher_secret_key,
            "rancher-project-name": rancher_project_name,
            "rancher-project-id": rancher_project_id,
            "rancher-os-image": rancher_os_image,
            "rancher-os-user": rancher_os_user,
            "rancher-memory-mb": rancher_memory_mb,
            "rancher-vcpu": rancher_vcpu,
        }
    )

    driver = RancherDriver(name, store.root, **_driver_options(ctx))
    try:
        driver.set_config_from_flags(options)
        driver.pre_create_check()
        store.save(driver)
        driver.create()
    except (DriverError, RancherError) as e:
        if store.exists(name):
            store.save(driver)
        _fail(e)
    finally:
        driver.close()

    store.save(driver)
    typer.echo(f"Machine {name} is running at {driver.ip_address}")


def _power(ctx: typer.Context, name: str, action: str) -> None:
    store = _store(ctx)
    driver = _load(ctx, name)
    try:
        getattr(driver, action)()
    except (DriverError, RancherError) as e:
        _fail(e)
    finally:
        driver.close()
    store.save(driver)


@app.command(help="Start a machine")
def start(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    _power(ctx, name, "start")


@app.command(help="Stop a machine")
def stop(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    _power(ctx, name, "stop")


@app.command(help="Kill a machine (same as stop on Rancher)")
def kill(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    _power(ctx, name, "kill")


@app.command(help="Restart a machine")
def restart(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    _power(ctx, name, "restart")


@app.command(help="Remove a machine")
def rm(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Machine name"),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Remove local configuration even if the VM cannot be removed",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    store = _store(ctx)
    driver = _load(ctx, name)
    if not yes:
        typer.confirm(f"About to remove {name}. Are you sure?", abort=True)

    try:
        driver.remove()
    except (DriverError, RancherError) as e:
        if not force:
            _fail(e)
        logger.warning(
            "Remote removal failed, removing local configuration",
            extra={"error": str(e)},
        )
    finally:
        driver.close()

    store.remove(name)
    typer.echo(f"Successfully removed {name}")


@app.command(help="Show the state of a machine")
def status(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    store = _store(ctx)
    driver = _load(ctx, name)
    try:
        state = driver.get_state()
    except (DriverError, RancherError) as e:
        typer.echo(MachineState.ERROR)
        _fail(e)
    finally:
        driver.close()
    store.save(driver)
    typer.echo(state)


@app.command(help="Show the IP address of a machine")
def ip(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    driver = _load(ctx, name)
    try:
        typer.echo(driver.get_ip())
    except DriverError as e:
        _fail(e)


@app.command(help="Show the Docker URL of a machine")
def url(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    store = _store(ctx)
    driver = _load(ctx, name)
    try:
        endpoint = driver.get_url()
    except (DriverError, RancherError) as e:
        _fail(e)
    finally:
        driver.close()
    store.save(driver)
    typer.echo(endpoint)


@app.command(help="Show the stored configuration of a machine")
def inspect(ctx: typer.Context, name: str = typer.Argument(..., help="Machine name")):
    try:
        record = _store(ctx).load_record(name)
    except DriverError as e:
        _fail(e)
    data = record.model_dump(mode="json")
    if data.get("config"):
        data["config"]["secret_key"] = SECRET_MASK
    typer.echo(json.dumps(data, indent=2))


@app.command(help="List machines")
def ls(ctx: typer.Context):
    store = _store(ctx)
    rows = []
    for name in store.list():
        try:
            driver = store.load(name, **_driver_options(ctx))
        except DriverError as e:
            logger.debug(
                "Cannot load machine", extra={"machine_name": name, "error": str(e)}
            )
            rows.append([name, DRIVER_NAME, MachineState.ERROR, ""])
            continue
        try:
            state = driver.get_state()
        except (DriverError, RancherError) as e:
            logger.debug(
                "State query failed", extra={"machine_name": name, "error": str(e)}
            )
            state = MachineState.ERROR
        finally:
            driver.close()
        store.save(driver)
        endpoint = ""
        if state is MachineState.RUNNING:
            try:
                endpoint = driver.docker_url()
            except DriverError:
                pass
        rows.append([name, driver.driver_name(), state, endpoint])
    typer.echo(tabulate(rows, headers=["NAME", "DRIVER", "STATE", "URL"]))


if __name__ == "__main__":
    app()
