import json
import subprocess

import pytest

from keptninstaller.errors import InstallerError, PreconditionError
from keptninstaller.models import PodEntry, PollPolicy
from keptninstaller.services.polling import Poller
from keptninstaller.services.readiness import ReadinessPoller, first_running, parse_pods


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def pods_payload(*pods):
    return json.dumps(
        {"items": [{"metadata": {"name": name}, "status": {"phase": phase}} for name, phase in pods]}
    )


def test_parse_pods_reads_names_and_phases():
    pods = parse_pods(pods_payload(("installer-a", "Pending"), ("installer-b", "Running")))

    assert pods == [PodEntry("installer-a", "Pending"), PodEntry("installer-b", "Running")]


def test_parse_pods_tolerates_junk():
    assert parse_pods("No resources found.") == []
    assert parse_pods("[]") == []
    assert parse_pods('{"items": null}') == []


def test_first_running_picks_first_running_pod():
    pods = [
        PodEntry("installer-a", "Pending"),
        PodEntry("installer-b", "Running"),
        PodEntry("installer-c", "Running"),
    ]

    assert first_running(pods) == "installer-b"
    assert first_running([PodEntry("installer-a", "Succeeded")]) is None


def test_wait_for_pod_polls_until_running_and_tolerates_query_errors():
    responses = [
        subprocess.CompletedProcess([], 1, stdout="", stderr="connection refused"),
        subprocess.CompletedProcess([], 0, stdout=pods_payload(("installer-a", "Pending")), stderr=""),
        subprocess.CompletedProcess(
            [],
            0,
            stdout=pods_payload(("installer-a", "Pending"), ("installer-b", "Running")),
            stderr="",
        ),
    ]
    calls = []

    def run_cmd(cmd, check=True, capture_output=False):
        calls.append(cmd)
        return responses.pop(0)

    readiness = ReadinessPoller(
        DummyLogger(),
        DummyConsole(),
        run_cmd,
        Poller(PollPolicy(interval_seconds=0, max_attempts=10), DummyLogger()),
    )

    assert readiness.wait_for_pod() == "installer-b"
    assert calls[0] == ["kubectl", "get", "pods", "-l", "app=installer", "-ojson"]
    assert len(calls) == 3


def test_parse_pods_tolerates_malformed_items():
    payload = json.dumps(
        {
            "items": [
                {"metadata": "installer-a", "status": {"phase": "Running"}},
                {"metadata": {"name": "installer-b"}, "status": ["Running"]},
                {"metadata": {"name": "installer-c"}, "status": {"phase": "Running"}},
            ]
        }
    )

    pods = parse_pods(payload)

    assert pods == [
        PodEntry("", "Running"),
        PodEntry("installer-b", ""),
        PodEntry("installer-c", "Running"),
    ]
    assert first_running(pods) == "installer-c"
    assert parse_pods('{"items": 5}') == []


def test_wait_for_pod_retries_after_command_timeout():
    calls = []

    def run_cmd(cmd, check=True, capture_output=False):
        calls.append(cmd)
        if len(calls) == 1:
            raise InstallerError(f"Command timed out after 1.0s: {' '.join(cmd)}")
        return subprocess.CompletedProcess(cmd, 0, stdout=pods_payload(("installer-a", "Running")), stderr="")

    readiness = ReadinessPoller(
        DummyLogger(),
        DummyConsole(),
        run_cmd,
        Poller(PollPolicy(interval_seconds=0, max_attempts=5), DummyLogger()),
    )

    assert readiness.wait_for_pod() == "installer-a"
    assert len(calls) == 2


def test_missing_kubectl_is_not_retried():
    def run_cmd(cmd, check=True, capture_output=False):
        raise PreconditionError("Required command not found: kubectl. Please install it and try again.")

    readiness = ReadinessPoller(
        DummyLogger(),
        DummyConsole(),
        run_cmd,
        Poller(PollPolicy(interval_seconds=0, max_attempts=5), DummyLogger()),
    )

    with pytest.raises(PreconditionError):
        readiness.wait_for_pod()
