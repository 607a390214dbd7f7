import logging
import queue
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Annotated

import typer
from prometheus_client import start_http_server

from .config import CONFIG_FILENAME, AppConfig
from .discovery import discover_users
from .errors import DiscoveryError
from .metrics import Metrics
from .monitor import MaildirMonitor
from .status import status_command
from .walker import UserMaildir

log: logging.Logger = logging.getLogger("maildirwatch")

app: typer.Typer = typer.Typer(
    help="maildirwatch: export structural metrics of per-user Maildirs",
)


def print_version(is_version: bool) -> None:
    """
    Callback for the global --version / -V option.

    Prints the installed version of the 'maildirwatch' package and stops
    the program when the flag is given; otherwise returns immediately so the
    subcommand runs.
    """
    if not is_version:
        return

    try:
        ver: str = version(distribution_name="maildirwatch")
    except PackageNotFoundError:
        ver = "unknown (package not installed)"

    typer.echo(ver)
    raise typer.Exit()


def configure_logging(level: str) -> None:
    numeric: int | None = logging.getLevelNamesMapping().get(level.upper())
    if numeric is None:
        raise typer.BadParameter(f"Unknown log level: {level}")

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_config() -> AppConfig:
    try:
        return AppConfig.load()
    except (FileNotFoundError, ValueError, TypeError) as e:
        typer.echo(e, err=True)
        raise typer.Exit(code=1)


@app.command()
def init(
    maildir_root: Path,
    listen_address: Annotated[str, typer.Option()] = "0.0.0.0",
    listen_port: Annotated[int, typer.Option()] = 9440,
    poll_interval: Annotated[float, typer.Option()] = 0.1,
    log_level: Annotated[str, typer.Option()] = "INFO",
    force: Annotated[bool, typer.Option()] = False,
) -> None:
    """
    Write a config file for a Maildir root.

    The root is expected to contain one Maildir directory per user.
    """

    if CONFIG_FILENAME.exists() and not force:
        typer.echo("Config file already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)

    cfg: AppConfig = AppConfig(
        maildir_root=maildir_root.resolve(),
        listen_address=listen_address,
        listen_port=listen_port,
        poll_interval=poll_interval,
        log_level=log_level.upper(),
    )

    cfg.save(CONFIG_FILENAME)
    typer.echo(f"Config written to {CONFIG_FILENAME}")


@app.command()
def run(
    listen_port: Annotated[int | None, typer.Option()] = None,
    log_level: Annotated[str | None, typer.Option()] = None,
) -> None:
    """Watch all user Maildirs and serve their metrics until interrupted."""
    cfg: AppConfig = load_config()

    if listen_port is not None:
        cfg.listen_port = listen_port
    if log_level is not None:
        cfg.log_level = log_level.upper()

    configure_logging(cfg.log_level)

    try:
        users: list[UserMaildir] = discover_users(cfg.maildir_root)
    except DiscoveryError as e:
        log.error("%s", e)
        raise typer.Exit(code=1)

    log.info("watching %d user Maildirs below %s", len(users), cfg.maildir_root)

    _ = start_http_server(cfg.listen_port, addr=cfg.listen_address)
    log.info("serving metrics on %s:%d", cfg.listen_address, cfg.listen_port)

    with MaildirMonitor(users, Metrics(), poll_interval=cfg.poll_interval) as monitor:
        try:
            while True:
                try:
                    user_path: Path = monitor.done.get(timeout=1.0)
                except queue.Empty:
                    if users and not monitor.running():
                        log.error("all Maildir walkers have stopped")
                        raise typer.Exit(code=1)
                    continue

                log.info("walked Maildir of %s", user_path)
        except KeyboardInterrupt:
            log.info("shutting down")


@app.command()
def status() -> None:
    """Walk every user Maildir once and print its counts and checksum."""
    cfg: AppConfig = load_config()

    try:
        failed: int = status_command(cfg)
    except DiscoveryError as e:
        typer.echo(e, err=True)
        raise typer.Exit(code=1)

    if failed:
        raise typer.Exit(code=1)


@app.command(name="version")
def version_cmd() -> None:
    """Print the installed version of maildirwatch."""
    print_version(True)


@app.callback()
def main(
    _version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=print_version,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Export structural metrics of per-user Maildirs."""


if __name__ == "__main__":
    app()
