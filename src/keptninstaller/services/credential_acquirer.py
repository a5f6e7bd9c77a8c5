"""Acquisition of a complete, validated credential record."""

from rich.table import Table

from keptninstaller.errors import CredentialValidationError, PreconditionError
from keptninstaller.errors_catalog import actionable_error
from keptninstaller.models import CREDENTIAL_FIELDS, CredentialRecord


class CredentialAcquirer:
    """Obtains install credentials from a file or from the operator."""

    def __init__(
        self,
        logger,
        console,
        credential_store,
        cluster_connector,
        identity_provider,
        prompt_service=None,
    ):
        self.logger = logger
        self.console = console
        self.store = credential_store
        self.cluster_connector = cluster_connector
        self.identity = identity_provider
        self.prompt = prompt_service

    def load_file(self, path: str) -> CredentialRecord:
        """Reads a credential file and checks it locally, without external calls."""
        record = self.store.read_file(path)

        missing = record.missing_fields()
        if missing:
            raise PreconditionError(
                actionable_error("incomplete_credentials", path=path, fields=", ".join(missing))
            )

        invalid = record.invalid_fields()
        if invalid:
            raise CredentialValidationError(
                f"Credential file {path} has malformed fields: {', '.join(invalid)}."
            )
        return record

    def verify(self, record: CredentialRecord):
        """Checks a file-provided record against the cluster and GitHub; any failure is fatal."""
        self.cluster_connector.authenticate(record)

        if not self.identity.has_repo_scope(record.github_personal_access_token):
            raise CredentialValidationError(actionable_error("token_scope"))

        if not self.identity.org_exists(record.github_personal_access_token, record.github_org):
            raise CredentialValidationError(actionable_error("org_missing", org=record.github_org))

    def acquire_interactive(self) -> CredentialRecord:
        record = self.store.load() or CredentialRecord()
        self.console.print("Please enter the following information or press enter to keep the old value:")

        while True:
            record = self.cluster_connector.connect(record)
            record = self.prompt.read_field(record, "github_user_name")
            record = self.prompt.read_field(record, "github_user_email")
            record = self._read_token(record)
            record = self._read_org(record)

            self._echo(record)
            if self.prompt.confirm("Is this all correct?"):
                break

        self.store.save(record)
        return record

    def _read_token(self, record: CredentialRecord) -> CredentialRecord:
        while True:
            record = self.prompt.read_field(record, "github_personal_access_token")
            if self.identity.has_repo_scope(record.github_personal_access_token):
                return record
            self.console.print(
                "[yellow]GitHub Personal Access Token requires at least a 'repo'-scope.[/yellow]"
            )
            record = record.with_values(github_personal_access_token="")

    def _read_org(self, record: CredentialRecord) -> CredentialRecord:
        while True:
            record = self.prompt.read_field(record, "github_org")
            if self.identity.org_exists(record.github_personal_access_token, record.github_org):
                return record
            self.console.print(
                f"[yellow]Provided GitHub Organization {record.github_org} does not exist.[/yellow]"
            )
            record = record.with_values(github_org="")

    def _echo(self, record: CredentialRecord):
        table = Table(title="Please confirm that the provided information is correct", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for name in (
            "cluster_name",
            "cluster_zone",
            "gke_project",
            "github_user_name",
            "github_user_email",
            "github_personal_access_token",
            "github_org",
        ):
            table.add_row(CREDENTIAL_FIELDS[name].label, getattr(record, name))
        self.console.print(table)
