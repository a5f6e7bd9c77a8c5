"""Static values shared across the keptn installer."""

import os

DEFAULT_KEPTN_DIR = os.path.join(os.path.expanduser("~"), ".keptn")
DEFAULT_KEPTN_VERSION = "master"

INSTALLER_PREFIX_URL = "https://raw.githubusercontent.com/keptn/installer/"
INSTALLER_SUFFIX_PATH = "/manifests/installer/installer.yaml"
RBAC_SUFFIX_PATH = "/manifests/installer/rbac.yaml"

INSTALLER_MANIFEST_FILE = "installer.yaml"
CREDENTIALS_FILE = ".install-creds"
CLI_CONFIG_FILE = "config.json"
REPORT_FILE = "install-report.json"
STDOUT_LOG_FILE = "keptn-installer.log"
STDERR_LOG_FILE = "keptn-installer-err.log"

INSTALLER_LABEL = "app=installer"
INSTALLER_CONTAINER = "keptn-installer"
INSTALLER_DEPLOYMENT = "installer"
KEPTN_NAMESPACE = "keptn"
API_TOKEN_SECRET = "keptn-api-token"
CONTROL_SERVICE = "control"

SUCCESS_MESSAGE = "Installation of keptn complete."
ENDPOINT_DOMAIN_SUFFIXES = ("xip.io", "nip.io")

GITHUB_API_URL = "https://api.github.com"
GITHUB_REQUIRED_SCOPE = "repo"

NAME_PATTERN = r"^(([a-z0-9]+-)*[a-z0-9]+)$"
EMAIL_PATTERN = r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,4}$"
TOKEN_PATTERN = r"^[a-z0-9]{40}$"

FILE_MODE = 0o600
DIR_MODE = 0o700
