import logging
import os
import subprocess
import threading
import uuid
from typing import Callable, List, Optional

import requests
from rich.console import Console

from .constants import (
    CLI_CONFIG_FILE,
    CREDENTIALS_FILE,
    DEFAULT_KEPTN_DIR,
    DEFAULT_KEPTN_VERSION,
    DIR_MODE,
    INSTALLER_MANIFEST_FILE,
    REPORT_FILE,
    STDERR_LOG_FILE,
    STDOUT_LOG_FILE,
)
from .errors import InstallerError
from .models import CredentialRecord, InstallPaths, PollPolicy, WorkflowState
from .services.bootstrap import PostInstallBootstrapper
from .services.cli_config import CliConfigService
from .services.cluster_connector import ClusterConnector
from .services.command_runner import CommandRunner
from .services.credential_acquirer import CredentialAcquirer
from .services.credential_store import CredentialStore
from .services.deployment import DeploymentDriver
from .services.download import DownloadService
from .services.gcloud import GcloudService
from .services.identity_provider import GitHubIdentityProvider
from .services.log_capture import LogStreamClassifier
from .services.polling import Poller
from .services.prompt import PromptService
from .services.readiness import ReadinessPoller
from .services.run_report import RunReportService
from .services.templater import ManifestTemplater, installer_url, rbac_url
from .services.validation import ValidationService

console = Console()
logger = logging.getLogger("keptninstaller")


def build_paths(keptn_dir: str) -> InstallPaths:
    return InstallPaths(
        keptn_dir=keptn_dir,
        installer_manifest=os.path.join(keptn_dir, INSTALLER_MANIFEST_FILE),
        stdout_log=os.path.join(keptn_dir, STDOUT_LOG_FILE),
        stderr_log=os.path.join(keptn_dir, STDERR_LOG_FILE),
        report_file=os.path.join(keptn_dir, REPORT_FILE),
        credentials_file=os.path.join(keptn_dir, CREDENTIALS_FILE),
        cli_config_file=os.path.join(keptn_dir, CLI_CONFIG_FILE),
    )


def _max_attempts(value: Optional[int]) -> Optional[int]:
    return int(value) if value else None


class KeptnInstaller:
    def __init__(
        self,
        creds_file: Optional[str] = None,
        keptn_version: str = DEFAULT_KEPTN_VERSION,
        keptn_dir: Optional[str] = None,
        dry_run: bool = False,
        poll_interval_seconds: float = 5.0,
        readiness_max_attempts: Optional[int] = 360,
        endpoint_max_attempts: Optional[int] = 360,
        backoff_factor: float = 1.0,
        endpoint_notice_every: int = 15,
        command_timeout: Optional[float] = None,
        input_func: Optional[Callable[[str], str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.creds_file = creds_file
        self.keptn_version = keptn_version
        self.dry_run = dry_run
        self.paths = build_paths(keptn_dir or DEFAULT_KEPTN_DIR)
        self.cancel_event = cancel_event or threading.Event()
        self.current_step_name: Optional[str] = None

        self.report_service = RunReportService(report_file=self.paths.report_file, logger=logger)
        self.command_runner = CommandRunner(
            logger=logger,
            default_timeout=command_timeout,
            subprocess_module=subprocess,
        )
        self.validation_service = ValidationService(requests_module=requests)
        self.download_service = DownloadService(
            logger=logger,
            console=console,
            requests_module=requests,
            retry_count=1,
        )
        self.credential_store = CredentialStore(self.paths.credentials_file, logger=logger)
        self.cli_config_service = CliConfigService(self.paths.cli_config_file, logger=logger)
        self.identity_provider = GitHubIdentityProvider(logger=logger, requests_module=requests)
        self.gcloud_service = GcloudService(logger=logger, run_cmd=self._run_cmd)
        self.prompt_service = PromptService(console, input_func=input_func)
        self.cluster_connector = ClusterConnector(
            logger=logger,
            console=console,
            gcloud_service=self.gcloud_service,
            run_cmd=self._run_cmd,
            prompt_service=self.prompt_service,
        )
        self.credential_acquirer = CredentialAcquirer(
            logger=logger,
            console=console,
            credential_store=self.credential_store,
            cluster_connector=self.cluster_connector,
            identity_provider=self.identity_provider,
            prompt_service=self.prompt_service,
        )
        self.templater = ManifestTemplater(
            logger=logger,
            console=console,
            download_service=self.download_service,
            gcloud_service=self.gcloud_service,
        )
        self.deployment_driver = DeploymentDriver(logger=logger, console=console, run_cmd=self._run_cmd)

        readiness_policy = PollPolicy(
            interval_seconds=poll_interval_seconds,
            max_attempts=_max_attempts(readiness_max_attempts),
            backoff_factor=backoff_factor,
        )
        endpoint_policy = PollPolicy(
            interval_seconds=poll_interval_seconds,
            max_attempts=_max_attempts(endpoint_max_attempts),
            backoff_factor=backoff_factor,
        )
        self.readiness_poller = ReadinessPoller(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            poller=Poller(readiness_policy, logger, self.cancel_event),
        )
        self.log_classifier = LogStreamClassifier(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            run_cmd=self._run_cmd,
            stdout_log=self.paths.stdout_log,
            stderr_log=self.paths.stderr_log,
        )
        self.bootstrapper = PostInstallBootstrapper(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            poller=Poller(endpoint_policy, logger, self.cancel_event),
            cli_config_service=self.cli_config_service,
            notice_every=endpoint_notice_every,
        )

    @property
    def installer_url(self) -> str:
        return installer_url(self.keptn_version)

    @property
    def rbac_url(self) -> str:
        return rbac_url(self.keptn_version)

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output)

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.report_service.step_started(name)
        self.current_step_name = name

        try:
            result = callback(*args, **kwargs)
        except Exception as exc:
            self.report_service.step_finished(name, "failed", error=str(exc))
            raise

        self.report_service.step_finished(name, "success")
        self.current_step_name = None
        return result

    def prepare_keptn_dir(self):
        os.makedirs(self.paths.keptn_dir, mode=DIR_MODE, exist_ok=True)

    def check_preconditions(self):
        console.print("[blue]Checking installer availability...[/blue]")
        self.validation_service.check_installer_availability(self.installer_url, self.rbac_url, logger)
        account = self.gcloud_service.get_account()
        logger.info("Using gcloud account %s", account)
        self.validation_service.ensure_kubectl(self._run_cmd)
        console.print("[green]Preconditions satisfied.[/green]")

    def acquire_credentials(self, record: Optional[CredentialRecord] = None) -> CredentialRecord:
        if record is not None:
            self.credential_acquirer.verify(record)
            return record
        return self.credential_acquirer.acquire_interactive()

    def prepare_manifest(self, record: CredentialRecord) -> str:
        return self.templater.prepare(record, self.keptn_version, self.paths.installer_manifest)

    def deploy(self):
        self.deployment_driver.deploy(self.rbac_url, self.paths.installer_manifest)

    def wait_for_installer_pod(self) -> str:
        return self.readiness_poller.wait_for_pod()

    def classify_logs(self, pod_name: str):
        self.report_service.add_artifact("stdout_log", self.paths.stdout_log)
        self.report_service.add_artifact("stderr_log", self.paths.stderr_log)
        self.log_classifier.classify(pod_name)

    def bootstrap(self, record: CredentialRecord) -> str:
        return self.bootstrapper.bootstrap(record)

    def remove_manifest(self):
        if os.path.exists(self.paths.installer_manifest):
            try:
                os.remove(self.paths.installer_manifest)
            except OSError as exc:
                logger.warning("Could not remove %s: %s", self.paths.installer_manifest, exc)

    def print_plan(self, record: CredentialRecord):
        console.print("[bold blue]Dry run: the following steps would be executed[/bold blue]")
        console.print(f"  1. Download {self.installer_url} to {self.paths.installer_manifest}")
        console.print(
            f"  2. Template it for cluster {record.cluster_name} ({record.cluster_zone}, "
            f"project {record.gke_project}) and organization {record.github_org}"
        )
        console.print(f"  3. kubectl apply -f {self.rbac_url}")
        console.print(f"  4. kubectl apply -f {self.paths.installer_manifest}")
        console.print("  5. Wait for the installer pod and follow its logs")
        console.print("  6. Configure the keptn CLI with the generated API token and endpoint")

    def run(self) -> int:
        exit_code = 1
        status = "failed"
        error: Optional[str] = None

        try:
            logger.info("Installing keptn...")
            self.prepare_keptn_dir()
            self.report_service.start_run(
                run_id=uuid.uuid4().hex[:10],
                metadata={
                    "keptn_version": self.keptn_version,
                    "creds_file": self.creds_file,
                    "dry_run": self.dry_run,
                },
            )

            record = None
            if self.creds_file:
                record = self._run_step(
                    "load_credentials", self.credential_acquirer.load_file, self.creds_file
                )
            self._run_step("check_preconditions", self.check_preconditions)

            record = self._run_step("acquire_credentials", self.acquire_credentials, record)
            self.report_service.transition(WorkflowState.CREDENTIALS_READY)
            self.report_service.transition(WorkflowState.CLUSTER_AUTHENTICATED, record.cluster_name)

            if self.dry_run:
                self.print_plan(record)
                status = "dry_run"
                exit_code = 0
                return exit_code

            self._run_step("prepare_manifest", self.prepare_manifest, record)
            self.report_service.add_artifact("installer_manifest", self.paths.installer_manifest)
            self.report_service.transition(WorkflowState.MANIFEST_PREPARED)

            self._run_step("deploy", self.deploy)
            self.report_service.transition(WorkflowState.DEPLOYED)

            pod_name = self._run_step("wait_for_installer_pod", self.wait_for_installer_pod)
            self.report_service.transition(WorkflowState.POD_RUNNING, pod_name)

            self._run_step("classify_logs", self.classify_logs, pod_name)
            self.report_service.transition(WorkflowState.LOGS_CLASSIFIED, "success")

            endpoint = self._run_step("bootstrap", self.bootstrap, record)
            self.report_service.add_artifact("endpoint", endpoint)
            self.report_service.transition(WorkflowState.CONFIGURED)

            self.remove_manifest()
            status = "success"
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            self.cancel_event.set()
            console.print("[bold red]Installation cancelled by user.[/bold red]")
            logger.info("Installation cancelled by user")
            status = "aborted"
            error = "Installation cancelled by user."
            return 1
        except InstallerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            error = str(exc)
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            error = str(exc)
            return 1
        finally:
            if status in ("failed", "aborted"):
                self.report_service.transition(
                    WorkflowState.FAILED, self.current_step_name or "run"
                )
            self.report_service.finalize(status, error=error)
