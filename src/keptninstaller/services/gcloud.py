"""gcloud invocations: active account, cluster credentials and cluster description."""

from typing import Callable, Tuple

import yaml

from keptninstaller.errors import InstallerError, PreconditionError
from keptninstaller.errors_catalog import actionable_error
from keptninstaller.models import CredentialRecord


class GcloudService:
    """Thin wrapper over the gcloud CLI used during installation."""

    def __init__(self, logger, run_cmd: Callable):
        self.logger = logger
        self.run_cmd = run_cmd

    def get_account(self) -> str:
        try:
            result = self.run_cmd(
                ["gcloud", "config", "get-value", "account"],
                check=True,
                capture_output=True,
            )
        except InstallerError as exc:
            raise PreconditionError(actionable_error("gcloud_not_configured", error=str(exc))) from exc

        lines = (result.stdout or "").replace("\r\n", "\n").split("\n")
        account = lines[0].strip()
        if not account or account == "(unset)":
            raise PreconditionError(
                actionable_error("gcloud_not_configured", error="no active account")
            )
        return account

    def get_credentials(self, record: CredentialRecord) -> bool:
        result = self.run_cmd(
            [
                "gcloud",
                "container",
                "clusters",
                "get-credentials",
                record.cluster_name,
                "--zone",
                record.cluster_zone,
                "--project",
                record.gke_project,
            ],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            self.logger.debug("get-credentials failed: %s", (result.stderr or "").strip())
            return False
        return True

    def describe_network_ranges(self, record: CredentialRecord) -> Tuple[str, str]:
        cmd = [
            "gcloud",
            "container",
            "clusters",
            "describe",
            record.cluster_name,
            f"--zone={record.cluster_zone}",
        ]
        if record.gke_project:
            cmd.append(f"--project={record.gke_project}")

        try:
            result = self.run_cmd(cmd, check=True, capture_output=True)
        except InstallerError as exc:
            raise InstallerError(f"Could not get cluster info: {exc}\nAborting installation") from exc

        try:
            description = yaml.safe_load(result.stdout or "")
        except yaml.YAMLError as exc:
            raise InstallerError(f"Could not parse cluster description: {exc}") from exc

        if not isinstance(description, dict):
            raise InstallerError("Cluster description has an unexpected format.")

        cluster_cidr = description.get("clusterIpv4Cidr")
        services_cidr = description.get("servicesIpv4Cidr")
        if not cluster_cidr or not services_cidr:
            raise InstallerError(
                f"Cluster {record.cluster_name} does not report clusterIpv4Cidr/servicesIpv4Cidr."
            )
        return str(cluster_cidr), str(services_cidr)
