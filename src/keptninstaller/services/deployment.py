"""Applies the installer RBAC and workload manifests to the cluster."""

from typing import Callable

from keptninstaller.errors import InstallerError, MutationError


class DeploymentDriver:
    """Runs `kubectl apply` for the access-control and installer manifests, in order."""

    def __init__(self, logger, console, run_cmd: Callable):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd

    def _apply(self, target: str, failure_message: str):
        try:
            self.run_cmd(["kubectl", "apply", "-f", target], check=True, capture_output=True)
        except InstallerError as exc:
            raise MutationError(f"{failure_message}\nAborting installation.\n{exc}") from exc

    def deploy(self, rbac_location: str, installer_path: str):
        self._apply(rbac_location, "Error while applying RBAC for installer pod.")

        self.console.print("[blue]Deploying keptn installer pod...[/blue]")
        self._apply(installer_path, "Error while deploying keptn installer pod.")
        self.console.print("[green]Installer pod deployed successfully.[/green]")
