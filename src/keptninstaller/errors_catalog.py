"""Actionable error catalog for the keptn installer."""

from typing import Dict

MANUAL_SETUP_URL = "https://keptn.sh/docs/0.2.0/reference/cli/"

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "installer_not_found": {
        "what": "Installers not found under:\n{installer_url}\n{rbac_url}",
        "next": "Check the value passed to `--keptn-version` and your network connection.",
    },
    "incomplete_credentials": {
        "what": "Incomplete credential file {path}. Missing fields: {fields}.",
        "next": "Fill in every field of the credential file or run the installer interactively.",
    },
    "kubectl_missing": {
        "what": "keptn requires 'kubectl' but it is not available.",
        "next": "Please see https://kubernetes.io/docs/tasks/tools/install-kubectl/",
    },
    "gcloud_not_configured": {
        "what": "Please configure your gcloud: {error}",
        "next": "Run `gcloud auth login` and `gcloud config set account <account>`.",
    },
    "token_scope": {
        "what": "Personal access token requires at least a 'repo'-scope.",
        "next": "Create a new GitHub token with the 'repo' scope and retry.",
    },
    "org_missing": {
        "what": "Provided organization {org} does not exist.",
        "next": "Check the spelling of the GitHub organization or create it first.",
    },
    "installation_failed": {
        "what": "keptn installation was unsuccessful.",
        "next": "Inspect the installer logs at {stdout_log} and {stderr_log}.",
    },
    "manual_setup": {
        "what": "{what}",
        "next": "To manually set up your keptn CLI, please follow the instructions at "
        + MANUAL_SETUP_URL,
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
