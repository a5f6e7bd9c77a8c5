"""Shared domain models for the keptn installer."""

import enum
import json
import re
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Optional

from .constants import EMAIL_PATTERN, NAME_PATTERN, TOKEN_PATTERN


@dataclass(frozen=True)
class CredentialField:
    """Describes one credential attribute: its wire key, prompt label and format."""

    name: str
    json_key: str
    label: str
    pattern: str

    @property
    def violation_message(self) -> str:
        return f"Please enter a valid {self.label}."

    def is_valid(self, value: str) -> bool:
        return re.match(self.pattern, value or "") is not None


CREDENTIAL_FIELDS = {
    "cluster_name": CredentialField("cluster_name", "clusterName", "Cluster Name", NAME_PATTERN),
    "cluster_zone": CredentialField("cluster_zone", "clusterZone", "Cluster Zone", NAME_PATTERN),
    "gke_project": CredentialField("gke_project", "gkeProject", "GKE Project", NAME_PATTERN),
    "github_user_name": CredentialField(
        "github_user_name", "githubUserName", "GitHub User Name", NAME_PATTERN
    ),
    "github_user_email": CredentialField(
        "github_user_email", "githubUserEmail", "GitHub User Email", EMAIL_PATTERN
    ),
    "github_personal_access_token": CredentialField(
        "github_personal_access_token",
        "githubPersonalAccessToken",
        "GitHub Personal Access Token",
        TOKEN_PATTERN,
    ),
    "github_org": CredentialField("github_org", "githubOrg", "GitHub Organization", NAME_PATTERN),
}


@dataclass(frozen=True)
class CredentialRecord:
    """Operator credentials threaded through the workflow as an immutable value."""

    cluster_name: str = ""
    cluster_zone: str = ""
    gke_project: str = ""
    github_org: str = ""
    github_user_name: str = ""
    github_user_email: str = ""
    github_personal_access_token: str = ""

    def with_values(self, **changes: str) -> "CredentialRecord":
        return replace(self, **changes)

    def missing_fields(self) -> List[str]:
        return [
            CREDENTIAL_FIELDS[item.name].json_key
            for item in fields(self)
            if not getattr(self, item.name)
        ]

    def invalid_fields(self) -> List[str]:
        return [
            CREDENTIAL_FIELDS[item.name].json_key
            for item in fields(self)
            if getattr(self, item.name)
            and not CREDENTIAL_FIELDS[item.name].is_valid(getattr(self, item.name))
        ]

    def to_json(self) -> str:
        payload = {CREDENTIAL_FIELDS[key].json_key: value for key, value in asdict(self).items()}
        return json.dumps(payload, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        values = {}
        for name, spec in CREDENTIAL_FIELDS.items():
            raw = data.get(spec.json_key)
            values[name] = raw.strip() if isinstance(raw, str) else ""
        return cls(**values)

    @classmethod
    def from_json(cls, text: str) -> "CredentialRecord":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("credential record must be a JSON object")
        return cls.from_dict(data)


@dataclass(frozen=True)
class PlaceholderBinding:
    token: str
    value: str


@dataclass(frozen=True)
class PodEntry:
    name: str
    phase: str


@dataclass
class LogOutcome:
    """Per-stream accumulator for the installer's marker protocol."""

    log_path: str
    line_count: int = 0
    success_seen: bool = False
    error_seen: bool = False

    @property
    def succeeded(self) -> bool:
        # A silent stream does not veto; a stream that spoke must confirm success.
        if self.error_seen:
            return False
        return self.line_count == 0 or self.success_seen


@dataclass(frozen=True)
class PollPolicy:
    """Retry schedule for convergence loops. ``max_attempts=None`` polls forever."""

    interval_seconds: float = 5.0
    max_attempts: Optional[int] = None
    backoff_factor: float = 1.0
    max_interval_seconds: float = 60.0

    def delay_for(self, attempt: int) -> float:
        delay = self.interval_seconds * (self.backoff_factor ** max(0, attempt - 1))
        return min(delay, max(self.interval_seconds, self.max_interval_seconds))


class WorkflowState(str, enum.Enum):
    IDLE = "Idle"
    CREDENTIALS_READY = "CredentialsReady"
    CLUSTER_AUTHENTICATED = "ClusterAuthenticated"
    MANIFEST_PREPARED = "ManifestPrepared"
    DEPLOYED = "Deployed"
    POD_RUNNING = "PodRunning"
    LOGS_CLASSIFIED = "LogsClassified"
    CONFIGURED = "Configured"
    FAILED = "Failed"


@dataclass
class InstallPaths:
    """Local files owned by one installer run."""

    keptn_dir: str
    installer_manifest: str
    stdout_log: str
    stderr_log: str
    report_file: str
    credentials_file: str
    cli_config_file: str
