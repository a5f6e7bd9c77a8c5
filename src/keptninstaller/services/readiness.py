"""Waits for the installer pod to reach the Running phase."""

import json
from typing import Callable, List, Optional

from keptninstaller.constants import INSTALLER_LABEL
from keptninstaller.errors import InstallerError, PreconditionError
from keptninstaller.models import PodEntry


def parse_pods(payload: str) -> List[PodEntry]:
    """Extracts (name, phase) pairs from `kubectl get pods -ojson` output; junk yields []."""
    try:
        data = json.loads(payload)
    except ValueError:
        return []
    if not isinstance(data, dict):
        return []

    items = data.get("items")
    if not isinstance(items, list):
        return []

    pods = []
    for item in items:
        if not isinstance(item, dict):
            continue
        metadata = item.get("metadata")
        status = item.get("status")
        name = metadata.get("name") if isinstance(metadata, dict) else None
        phase = status.get("phase") if isinstance(status, dict) else None
        pods.append(
            PodEntry(
                name=name if isinstance(name, str) else "",
                phase=phase if isinstance(phase, str) else "",
            )
        )
    return pods


def first_running(pods: List[PodEntry]) -> Optional[str]:
    for pod in pods:
        if pod.phase == "Running" and pod.name:
            return pod.name
    return None


class ReadinessPoller:
    """Polls the installer pods until one of them is Running."""

    def __init__(self, logger, console, run_cmd: Callable, poller, label: str = INSTALLER_LABEL):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.poller = poller
        self.label = label

    def _query(self) -> Optional[str]:
        try:
            result = self.run_cmd(
                ["kubectl", "get", "pods", "-l", self.label, "-ojson"],
                check=False,
                capture_output=True,
            )
        except PreconditionError:
            raise
        except InstallerError as exc:
            self.logger.debug("Could not list installer pods: %s", exc)
            return None
        if result.returncode != 0:
            self.logger.debug("Could not list installer pods: %s", (result.stderr or "").strip())
            return None
        return first_running(parse_pods(result.stdout or ""))

    def wait_for_pod(self) -> str:
        self.console.print("[yellow]Waiting for the installer pod to start...[/yellow]")
        pod_name = self.poller.until(self._query, "the installer pod", wait_first=True)
        self.console.print(f"[green]Installer pod {pod_name} is running.[/green]")
        return pod_name
