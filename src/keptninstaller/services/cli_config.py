"""Local CLI authentication and GitHub configuration state (`auth` / `configure`)."""

import json
import os
import tempfile
from typing import Any, Dict

import requests

from keptninstaller.constants import FILE_MODE
from keptninstaller.errors import InstallerError
from keptninstaller.models import CREDENTIAL_FIELDS


class CliConfigService:
    """Verifies keptn endpoints and stores what the CLI needs to talk to them."""

    def __init__(self, config_file: str, logger, requests_module=requests, timeout: float = 30.0):
        self.config_file = config_file
        self.logger = logger
        self.requests = requests_module
        self.timeout = timeout

    def load(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_file):
            return {}
        try:
            with open(self.config_file, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
        except (OSError, json.JSONDecodeError) as exc:
            raise InstallerError(f"Could not read CLI config '{self.config_file}': {exc}") from exc
        if not isinstance(data, dict):
            raise InstallerError(f"CLI config '{self.config_file}' has invalid format.")
        return data

    def authenticate(self, endpoint: str, api_token: str):
        endpoint = endpoint.rstrip("/")
        if not endpoint or not api_token:
            raise InstallerError("Both an endpoint and an API token are required for authentication.")

        self.logger.info("Authenticating at %s", endpoint)
        try:
            response = self.requests.post(
                f"{endpoint}/auth",
                headers={"x-token": api_token},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise InstallerError(f"Authentication at {endpoint} failed: {exc}") from exc

        data = self.load()
        data["endpoint"] = endpoint
        data["api_token"] = api_token
        self._write(data)

    def configure(self, org: str, user: str, token: str):
        checks = (
            ("github_org", org),
            ("github_user_name", user),
            ("github_personal_access_token", token),
        )
        for name, value in checks:
            spec = CREDENTIAL_FIELDS[name]
            if not spec.is_valid(value):
                raise InstallerError(spec.violation_message)

        data = self.load()
        data["github"] = {"org": org, "user": user, "token": token}
        self._write(data)
        self.logger.info("Stored GitHub configuration for organization %s", org)

    def _write(self, data: Dict[str, Any]):
        directory = os.path.dirname(self.config_file) or "."
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix="config-", suffix=".json", dir=directory)
        try:
            os.chmod(temp_path, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(data, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.config_file)
        except OSError as exc:
            raise InstallerError(f"Could not write CLI config '{self.config_file}': {exc}") from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
