"""Install report: workflow state transitions, step timings and artifacts."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from keptninstaller.models import WorkflowState


class RunReportService:
    """Collects execution metadata and writes the install report JSON."""

    def __init__(self, report_file: str, logger):
        self.report_file = report_file
        self.logger = logger
        self.report: Dict[str, Any] = {
            "run_id": None,
            "state": WorkflowState.IDLE.value,
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "metadata": {},
            "transitions": [],
            "steps": [],
            "artifacts": {},
            "error": None,
        }

    @property
    def state(self) -> WorkflowState:
        return WorkflowState(self.report["state"])

    def start_run(self, run_id: str, metadata: Dict[str, Any]):
        self.report["run_id"] = run_id
        self.report["started_at"] = self._now()
        self.report["metadata"] = metadata
        self.write()

    def transition(self, state: WorkflowState, detail: Optional[str] = None):
        previous = self.report["state"]
        self.report["state"] = state.value
        self.report["transitions"].append(
            {"from": previous, "to": state.value, "at": self._now(), "detail": detail}
        )
        self.logger.debug("Workflow state %s -> %s", previous, state.value)
        self.write()

    def step_started(self, step_name: str):
        self.report["steps"].append(
            {
                "name": step_name,
                "status": "running",
                "started_at": self._now(),
                "finished_at": None,
                "duration_seconds": None,
                "error": None,
            }
        )
        self.write()

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        for step in reversed(self.report["steps"]):
            if step["name"] == step_name and step["status"] == "running":
                step["status"] = status
                step["finished_at"] = self._now()
                step["error"] = error
                step["duration_seconds"] = self._elapsed(step["started_at"], step["finished_at"])
                break
        self.write()

    def add_artifact(self, key: str, value: str):
        self.report["artifacts"][key] = value
        self.write()

    def finalize(self, status: str, error: Optional[str] = None):
        self.report["status"] = status
        self.report["finished_at"] = self._now()
        if self.report.get("started_at"):
            self.report["duration_seconds"] = self._elapsed(
                self.report["started_at"], self.report["finished_at"]
            )
        self.report["error"] = error
        self.write()

    def write(self):
        directory = os.path.dirname(self.report_file) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix="install-report-", suffix=".json", dir=directory)
        except OSError as exc:
            self.logger.warning("Could not write install report '%s': %s", self.report_file, exc)
            return

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            self.logger.warning("Could not write install report '%s': %s", self.report_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass

    @staticmethod
    def _elapsed(started_at: str, finished_at: str) -> float:
        return (datetime.fromisoformat(finished_at) - datetime.fromisoformat(started_at)).total_seconds()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
