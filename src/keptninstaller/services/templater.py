"""Installer manifest templating."""

from typing import Any, Dict, List

import yaml

from keptninstaller.constants import (
    INSTALLER_PREFIX_URL,
    INSTALLER_SUFFIX_PATH,
    RBAC_SUFFIX_PATH,
)
from keptninstaller.errors import InstallerError
from keptninstaller.models import CredentialRecord, PlaceholderBinding


def installer_url(version: str) -> str:
    return INSTALLER_PREFIX_URL + version + INSTALLER_SUFFIX_PATH


def rbac_url(version: str) -> str:
    return INSTALLER_PREFIX_URL + version + RBAC_SUFFIX_PATH


def build_bindings(
    record: CredentialRecord,
    gcloud_user: str,
    cluster_cidr: str,
    services_cidr: str,
) -> List[PlaceholderBinding]:
    return [
        PlaceholderBinding("GITHUB_PERSONAL_ACCESS_TOKEN", record.github_personal_access_token),
        PlaceholderBinding("GITHUB_USER_EMAIL", record.github_user_email),
        PlaceholderBinding("GITHUB_USER_NAME", record.github_user_name),
        PlaceholderBinding("GITHUB_ORGANIZATION", record.github_org),
        PlaceholderBinding("GCLOUD_USER", gcloud_user),
        PlaceholderBinding("CLUSTER_IPV4_CIDR", cluster_cidr),
        PlaceholderBinding("SERVICES_IPV4_CIDR", services_cidr),
    ]


def render_manifest(text: str, bindings: List[PlaceholderBinding]) -> str:
    """Replaces every `value: <token>` entry whose value is a bound token.

    The manifest is parsed and re-serialized, so a token only matches a whole
    `value` scalar, never a substring of another string.
    """
    lookup = {binding.token: binding.value for binding in bindings}
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as exc:
        raise InstallerError(f"Installer manifest is not valid YAML: {exc}") from exc

    for document in documents:
        _substitute(document, lookup)

    return yaml.safe_dump_all(documents, sort_keys=False, default_flow_style=False)


def _substitute(node: Any, lookup: Dict[str, str]):
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "value" and isinstance(value, str) and value in lookup:
                node[key] = lookup[value]
            else:
                _substitute(value, lookup)
    elif isinstance(node, list):
        for item in node:
            _substitute(item, lookup)


class ManifestTemplater:
    """Downloads the installer manifest and fills in the cluster-specific values."""

    def __init__(self, logger, console, download_service, gcloud_service):
        self.logger = logger
        self.console = console
        self.download_service = download_service
        self.gcloud = gcloud_service

    def prepare(self, record: CredentialRecord, version: str, dest_path: str) -> str:
        self.download_service.download_file(
            installer_url(version),
            dest_path,
            description="Downloading installer manifest...",
        )

        gcloud_user = self.gcloud.get_account()
        cluster_cidr, services_cidr = self.gcloud.describe_network_ranges(record)
        self.logger.debug("Cluster ranges: pods %s, services %s", cluster_cidr, services_cidr)

        bindings = build_bindings(record, gcloud_user, cluster_cidr, services_cidr)
        try:
            with open(dest_path, "r", encoding="utf-8") as file_obj:
                content = file_obj.read()
            rendered = render_manifest(content, bindings)
            with open(dest_path, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(rendered)
        except OSError as exc:
            raise InstallerError(f"Could not template installer manifest '{dest_path}': {exc}") from exc

        self.console.print("[green]Installer manifest prepared.[/green]")
        return dest_path
