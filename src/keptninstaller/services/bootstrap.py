"""Configures the local CLI once keptn is running on the cluster."""

import base64
import json
from typing import Callable, Iterable, Optional

from keptninstaller.constants import (
    API_TOKEN_SECRET,
    CONTROL_SERVICE,
    ENDPOINT_DOMAIN_SUFFIXES,
    KEPTN_NAMESPACE,
)
from keptninstaller.errors import BootstrapError, ConvergenceError, InstallerError, PreconditionError
from keptninstaller.errors_catalog import actionable_error
from keptninstaller.models import CredentialRecord


def is_routable_domain(domain: str, suffixes: Iterable[str] = ENDPOINT_DOMAIN_SUFFIXES) -> bool:
    domain = domain.strip().rstrip(".").lower()
    if not domain:
        return False
    return any(domain == suffix or domain.endswith("." + suffix) for suffix in suffixes)


def decode_api_token(payload: str) -> str:
    """Pulls the base64 `keptn-api-token` out of a secret's JSON representation."""
    data = json.loads(payload)
    encoded = ((data or {}).get("data") or {}).get(API_TOKEN_SECRET)
    if not encoded:
        raise ValueError(f"secret has no '{API_TOKEN_SECRET}' entry")
    return base64.b64decode(encoded, validate=True).decode("utf-8")


class PostInstallBootstrapper:
    """Reads the generated API token and endpoint, then runs `auth` and `configure`."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        poller,
        cli_config_service,
        notice_every: int = 15,
        suffixes: Iterable[str] = ENDPOINT_DOMAIN_SUFFIXES,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.poller = poller
        self.cli_config = cli_config_service
        self.notice_every = notice_every
        self.suffixes = tuple(suffixes)

    def _manual(self, what: str) -> BootstrapError:
        return BootstrapError(actionable_error("manual_setup", what=what))

    def fetch_api_token(self) -> str:
        try:
            result = self.run_cmd(
                ["kubectl", "get", "secret", API_TOKEN_SECRET, "-n", KEPTN_NAMESPACE, "-ojson"],
                check=True,
                capture_output=True,
            )
            return decode_api_token(result.stdout or "")
        except (InstallerError, ValueError, AttributeError) as exc:
            raise self._manual(f"Could not retrieve keptn API token: {exc}") from exc

    def _query_domain(self) -> Optional[str]:
        try:
            result = self.run_cmd(
                [
                    "kubectl",
                    "get",
                    "ksvc",
                    "-n",
                    KEPTN_NAMESPACE,
                    CONTROL_SERVICE,
                    "-ojsonpath={.status.domain}",
                ],
                check=False,
                capture_output=True,
            )
        except PreconditionError:
            raise
        except InstallerError as exc:
            self.logger.debug("Could not query the keptn API endpoint: %s", exc)
            return None
        if result.returncode != 0:
            return None
        domain = (result.stdout or "").strip()
        if not is_routable_domain(domain, self.suffixes):
            if domain:
                self.logger.debug("Ignoring endpoint domain %s", domain)
            return None
        return domain

    def _notice(self, attempt: int):
        if self.notice_every and attempt % self.notice_every == 0:
            self.console.print(
                "[yellow]API endpoint not yet available... trying again in "
                f"{self.poller.policy.interval_seconds:g}s[/yellow]"
            )

    def wait_for_endpoint(self) -> str:
        domain = self.poller.until(self._query_domain, "the keptn API endpoint", on_miss=self._notice)
        return f"https://{domain}"

    def bootstrap(self, record: CredentialRecord) -> str:
        self.console.print("[blue]Starting to configure your keptn CLI...[/blue]")
        api_token = self.fetch_api_token()
        try:
            endpoint = self.wait_for_endpoint()
        except ConvergenceError as exc:
            raise self._manual(str(exc)) from exc

        try:
            self.cli_config.authenticate(endpoint, api_token)
        except InstallerError as exc:
            raise self._manual(f"Authentication at keptn failed: {exc}") from exc

        try:
            self.cli_config.configure(
                record.github_org,
                record.github_user_name,
                record.github_personal_access_token,
            )
        except InstallerError as exc:
            raise self._manual(f"Configuration failed: {exc}") from exc

        self.console.print(
            "[green]Your CLI is now successfully configured. You are now ready to use keptn.[/green]"
        )
        return endpoint
