"""Precondition checks run before any cluster mutation."""

from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from keptninstaller.errors import InstallerError, PreconditionError
from keptninstaller.errors_catalog import actionable_error


class ValidationService:
    """Validates remote installer artifacts and required local tools."""

    def __init__(self, requests_module=requests, timeout: float = 30.0):
        self.requests = requests_module
        self.timeout = timeout

    def is_url(self, location: str) -> bool:
        scheme = urlparse(location).scheme.lower()
        return scheme in {"http", "https"}

    def probe_url(self, location: str, label: str):
        if not self.is_url(location):
            raise InstallerError(f"{label} is not an HTTP(S) URL: {location}")

        last_error: Optional[Exception] = None
        for method in ("HEAD", "GET"):
            try:
                response = self.requests.request(
                    method,
                    location,
                    allow_redirects=True,
                    timeout=self.timeout,
                    stream=(method == "GET"),
                )
                response.raise_for_status()
                response.close()
                return
            except self.requests.RequestException as exc:
                last_error = exc

        raise InstallerError(f"{label} is not accessible: {last_error}")

    def check_installer_availability(self, installer_url: str, rbac_url: str, logger):
        for url, label in ((installer_url, "installer manifest"), (rbac_url, "RBAC manifest")):
            try:
                self.probe_url(url, label)
            except InstallerError as exc:
                logger.debug(str(exc))
                raise PreconditionError(
                    actionable_error("installer_not_found", installer_url=installer_url, rbac_url=rbac_url)
                ) from exc

    def ensure_kubectl(self, run_cmd: Callable):
        try:
            run_cmd(["kubectl", "version", "--client"], check=True, capture_output=True)
        except InstallerError as exc:
            raise PreconditionError(actionable_error("kubectl_missing")) from exc
