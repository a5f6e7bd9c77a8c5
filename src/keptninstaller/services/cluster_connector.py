"""Authentication against the GKE cluster control plane."""

from typing import Callable, Tuple

from keptninstaller.errors import ConnectivityError
from keptninstaller.models import CredentialRecord

CLUSTER_FIELDS = ("cluster_name", "cluster_zone", "gke_project")


class ClusterConnector:
    """Resolves cluster identifiers and fetches kubectl credentials for them."""

    def __init__(self, logger, console, gcloud_service, run_cmd: Callable, prompt_service=None):
        self.logger = logger
        self.console = console
        self.gcloud = gcloud_service
        self.run_cmd = run_cmd
        self.prompt = prompt_service

    def infer_from_context(self) -> Tuple[str, str, str]:
        """Reads (cluster, zone, project) from a `gke_<project>_<zone>_<cluster>` context."""
        result = self.run_cmd(
            ["kubectl", "config", "current-context"],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            return "", "", ""

        context = (result.stdout or "").replace("\r\n", "\n").strip()
        if not context.startswith("gke"):
            return "", "", ""

        parts = context.split("_")
        if len(parts) < 4:
            return "", "", ""
        return parts[3], parts[2], parts[1]

    def connect(self, record: CredentialRecord) -> CredentialRecord:
        """Prompts for the cluster identifiers until get-credentials succeeds."""
        if not (record.cluster_name and record.cluster_zone and record.gke_project):
            name, zone, project = self.infer_from_context()
            record = record.with_values(cluster_name=name, cluster_zone=zone, gke_project=project)
            if name:
                self.logger.debug("Inferred cluster %s in %s (%s) from kubectl context", name, zone, project)

        while True:
            for field_name in CLUSTER_FIELDS:
                record = self.prompt.read_field(record, field_name)
            if self.gcloud.get_credentials(record):
                self.console.print(f"[green]Connected to cluster {record.cluster_name}.[/green]")
                return record
            self.logger.warning(
                "Could not connect to cluster. Please verify that you have entered the correct information."
            )

    def authenticate(self, record: CredentialRecord):
        """Single non-interactive attempt; failure is fatal."""
        if not self.gcloud.get_credentials(record):
            raise ConnectivityError(f"Cannot authenticate at cluster {record.cluster_name}")
        self.console.print(f"[green]Connected to cluster {record.cluster_name}.[/green]")
