"""GitHub checks for the personal access token and organization."""

import requests

from keptninstaller.constants import GITHUB_API_URL, GITHUB_REQUIRED_SCOPE
from keptninstaller.errors import InstallerError


class GitHubIdentityProvider:
    """Confirms a token carries the required scope and an organization exists."""

    def __init__(self, logger, requests_module=requests, api_url: str = GITHUB_API_URL, timeout: float = 30.0):
        self.logger = logger
        self.requests = requests_module
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _headers(self, token: str):
        return {"Authorization": f"token {token}", "Accept": "application/vnd.github.v3+json"}

    def has_repo_scope(self, token: str) -> bool:
        try:
            response = self.requests.get(self.api_url + "/", headers=self._headers(token), timeout=self.timeout)
        except self.requests.RequestException as exc:
            raise InstallerError(f"Could not verify GitHub token: {exc}") from exc

        if response.status_code == 401:
            return False
        if response.status_code >= 400:
            raise InstallerError(f"Could not verify GitHub token: HTTP {response.status_code}")

        scopes = [scope.strip() for scope in response.headers.get("X-OAuth-Scopes", "").split(",")]
        self.logger.debug("GitHub token scopes: %s", ", ".join(s for s in scopes if s) or "<none>")
        return GITHUB_REQUIRED_SCOPE in scopes

    def org_exists(self, token: str, org: str) -> bool:
        try:
            response = self.requests.get(
                f"{self.api_url}/orgs/{org}",
                headers=self._headers(token),
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise InstallerError(f"Could not verify GitHub organization '{org}': {exc}") from exc

        if response.status_code == 404:
            return False
        if response.status_code >= 400:
            raise InstallerError(
                f"Could not verify GitHub organization '{org}': HTTP {response.status_code}"
            )
        return True
