import logging
import os
import signal
import threading

import click
from rich.logging import RichHandler

from .constants import DEFAULT_KEPTN_DIR, DEFAULT_KEPTN_VERSION
from .core import KeptnInstaller, build_paths
from .errors import InstallerError
from .services.cli_config import CliConfigService
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if config.get(key) is not None:
        return config[key]
    return default


def _configure_logging(verbose: bool, log_file=None):
    logger = logging.getLogger("keptninstaller")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _terminate_handler(cancel_event: threading.Event):
    """Turns SIGTERM into the same abort path as Ctrl-C."""

    def _handler(_signum, _frame):
        cancel_event.set()
        raise KeyboardInterrupt

    return _handler


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.group()
def main():
    """Install keptn on a Kubernetes cluster and configure the local CLI."""


@main.command()
@click.option("--creds", "-c", required=False, type=click.Path(), help="Path to a JSON credential file")
@click.option(
    "--keptn-version",
    "-k",
    required=False,
    help="The branch or tag of the installer to deploy (default: master).",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .keptninstaller.yml if present.",
)
@click.option("--keptn-dir", required=False, type=click.Path(), help="Directory for logs, manifests and CLI state.")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Validate preconditions and credentials, print the plan and stop before touching the cluster.",
)
@click.option(
    "--poll-interval-seconds",
    type=float,
    default=None,
    help="Seconds between readiness and endpoint checks (default: 5).",
)
@click.option(
    "--readiness-max-attempts",
    type=int,
    default=None,
    help="Give up waiting for the installer pod after this many checks (0 waits forever, default: 360).",
)
@click.option(
    "--endpoint-max-attempts",
    type=int,
    default=None,
    help="Give up waiting for the API endpoint after this many checks (0 waits forever, default: 360).",
)
@click.option(
    "--backoff-factor",
    type=float,
    default=None,
    help="Multiplier applied to the poll interval after each failed check (default: 1.0).",
)
@click.option(
    "--command-timeout",
    type=float,
    default=None,
    help="Timeout in seconds for individual kubectl/gcloud invocations.",
)
def install(
    creds,
    keptn_version,
    config,
    keptn_dir,
    verbose,
    log_file,
    dry_run,
    poll_interval_seconds,
    readiness_max_attempts,
    endpoint_max_attempts,
    backoff_factor,
    command_timeout,
):
    """Installs keptn on your Kubernetes cluster."""
    try:
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ".keptninstaller.yml")
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = ConfigLoader().load(resolved_config)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    _configure_logging(verbose, _resolve_option(log_file, config_values, "log_file"))

    command_timeout = _resolve_option(command_timeout, config_values, "command_timeout")
    cancel_event = threading.Event()
    signal.signal(signal.SIGTERM, _terminate_handler(cancel_event))

    try:
        installer = KeptnInstaller(
            creds_file=_resolve_option(creds, config_values, "creds"),
            keptn_version=str(
                _resolve_option(keptn_version, config_values, "keptn_version", default=DEFAULT_KEPTN_VERSION)
            ),
            keptn_dir=_resolve_option(keptn_dir, config_values, "keptn_dir", default=DEFAULT_KEPTN_DIR),
            dry_run=bool(_resolve_option(dry_run, config_values, "dry_run", default=False)),
            poll_interval_seconds=float(
                _resolve_option(poll_interval_seconds, config_values, "poll_interval_seconds", default=5.0)
            ),
            readiness_max_attempts=int(
                _resolve_option(readiness_max_attempts, config_values, "readiness_max_attempts", default=360)
            ),
            endpoint_max_attempts=int(
                _resolve_option(endpoint_max_attempts, config_values, "endpoint_max_attempts", default=360)
            ),
            backoff_factor=float(_resolve_option(backoff_factor, config_values, "backoff_factor", default=1.0)),
            endpoint_notice_every=int(
                _resolve_option(None, config_values, "endpoint_notice_every", default=15)
            ),
            command_timeout=float(command_timeout) if command_timeout else None,
            cancel_event=cancel_event,
        )
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(installer.run())


@main.command()
@click.option("--endpoint", required=True, help="The endpoint exposed by keptn")
@click.option("--api-token", required=True, help="The API token provided by keptn")
@click.option("--keptn-dir", required=False, type=click.Path(), default=DEFAULT_KEPTN_DIR)
def auth(endpoint, api_token, keptn_dir):
    """Authenticates the keptn CLI against a keptn installation."""
    service = CliConfigService(build_paths(keptn_dir).cli_config_file, logger=logging.getLogger("keptninstaller"))
    try:
        service.authenticate(endpoint, api_token)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Successfully authenticated at {endpoint}")


@main.command()
@click.option("--org", required=True, help="The GitHub organization")
@click.option("--user", required=True, help="The GitHub user name")
@click.option("--token", required=True, help="The GitHub personal access token")
@click.option("--keptn-dir", required=False, type=click.Path(), default=DEFAULT_KEPTN_DIR)
def configure(org, user, token, keptn_dir):
    """Stores the GitHub organization, user and token used by keptn."""
    service = CliConfigService(build_paths(keptn_dir).cli_config_file, logger=logging.getLogger("keptninstaller"))
    try:
        service.configure(org, user, token)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Successfully configured GitHub organization {org}")


if __name__ == "__main__":
    main()
