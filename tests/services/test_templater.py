import pytest
import yaml
from rich.console import Console

from keptninstaller.errors import InstallerError
from keptninstaller.models import CredentialRecord
from keptninstaller.services.templater import (
    ManifestTemplater,
    build_bindings,
    installer_url,
    rbac_url,
    render_manifest,
)

TOKEN = "0123456789abcdef0123456789abcdef01234567"
RECORD = CredentialRecord(
    cluster_name="keptn",
    cluster_zone="us-east1-b",
    gke_project="my-project",
    github_org="acme",
    github_user_name="jdoe",
    github_user_email="jdoe@example.com",
    github_personal_access_token=TOKEN,
)

MANIFEST = """\
apiVersion: v1
kind: Namespace
metadata:
  name: keptn
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: installer
spec:
  template:
    spec:
      containers:
      - name: keptn-installer
        image: keptn/installer:latest
        env:
        - name: GITHUB_PERSONAL_ACCESS_TOKEN
          value: GITHUB_PERSONAL_ACCESS_TOKEN
        - name: GITHUB_USER_EMAIL
          value: GITHUB_USER_EMAIL
        - name: GITHUB_ORGANIZATION
          value: GITHUB_ORGANIZATION
        - name: GITHUB_USER_NAME
          value: GITHUB_USER_NAME
        - name: GCLOUD_USER
          value: GCLOUD_USER
        - name: CLUSTER_IPV4_CIDR
          value: CLUSTER_IPV4_CIDR
        - name: SERVICES_IPV4_CIDR
          value: SERVICES_IPV4_CIDR
        - name: NOTE
          value: keep GITHUB_ORGANIZATION in prose
"""


def bindings():
    return build_bindings(RECORD, "jdoe@example.com", "10.8.0.0/14", "10.11.240.0/20")


def env_of(rendered):
    documents = list(yaml.safe_load_all(rendered))
    container = documents[1]["spec"]["template"]["spec"]["containers"][0]
    return {entry["name"]: entry["value"] for entry in container["env"]}


def test_urls_follow_version():
    assert installer_url("0.2.0") == (
        "https://raw.githubusercontent.com/keptn/installer/0.2.0/manifests/installer/installer.yaml"
    )
    assert rbac_url("master").endswith("/master/manifests/installer/rbac.yaml")


def test_render_manifest_binds_every_placeholder():
    env = env_of(render_manifest(MANIFEST, bindings()))

    assert env["GITHUB_PERSONAL_ACCESS_TOKEN"] == TOKEN
    assert env["GITHUB_USER_EMAIL"] == "jdoe@example.com"
    assert env["GITHUB_ORGANIZATION"] == "acme"
    assert env["GITHUB_USER_NAME"] == "jdoe"
    assert env["GCLOUD_USER"] == "jdoe@example.com"
    assert env["CLUSTER_IPV4_CIDR"] == "10.8.0.0/14"
    assert env["SERVICES_IPV4_CIDR"] == "10.11.240.0/20"
    assert env["NOTE"] == "keep GITHUB_ORGANIZATION in prose"


def test_render_manifest_is_idempotent():
    once = render_manifest(MANIFEST, bindings())

    assert render_manifest(once, bindings()) == once


def test_render_manifest_rejects_invalid_yaml():
    with pytest.raises(InstallerError, match="not valid YAML"):
        render_manifest("a: [unclosed", bindings())


class FakeDownloadService:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def download_file(self, url, dest_path, description=""):
        self.calls.append(url)
        with open(dest_path, "w", encoding="utf-8") as file_obj:
            file_obj.write(self.content)


class FakeGcloud:
    def get_account(self):
        return "jdoe@example.com"

    def describe_network_ranges(self, record):
        return "10.8.0.0/14", "10.11.240.0/20"


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


def test_prepare_downloads_and_templates_in_place(tmp_path):
    download = FakeDownloadService(MANIFEST)
    templater = ManifestTemplater(DummyLogger(), Console(record=True), download, FakeGcloud())
    dest = tmp_path / "installer.yaml"

    assert templater.prepare(RECORD, "0.2.0", str(dest)) == str(dest)

    assert download.calls == [installer_url("0.2.0")]
    env = env_of(dest.read_text(encoding="utf-8"))
    assert env["GITHUB_ORGANIZATION"] == "acme"
    assert env["CLUSTER_IPV4_CIDR"] == "10.8.0.0/14"
