"""Captures the installer pod logs and decides whether the installation succeeded."""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from keptninstaller.constants import INSTALLER_CONTAINER, INSTALLER_DEPLOYMENT
from keptninstaller.errors import ClassificationError
from keptninstaller.errors_catalog import actionable_error
from keptninstaller.models import LogOutcome
from keptninstaller.services.log_protocol import consume_line


class LogStreamClassifier:
    """Drains stdout and stderr of `kubectl logs -f` concurrently into local log files.

    stdout is drained on a worker thread and handed back through its future;
    stderr is drained on the calling thread. The log process is only joined
    once both pipes are exhausted, so it can never stall on a full pipe.
    """

    def __init__(
        self,
        logger,
        console,
        command_runner,
        run_cmd: Callable,
        stdout_log: str,
        stderr_log: str,
        container: str = INSTALLER_CONTAINER,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.run_cmd = run_cmd
        self.stdout_log = stdout_log
        self.stderr_log = stderr_log
        self.container = container

    def drain(self, stream: Iterable[str], log_path: str) -> LogOutcome:
        outcome = LogOutcome(log_path=log_path)
        file_obj = None
        try:
            for raw_line in stream:
                line = raw_line.rstrip("\r\n")
                if file_obj is None:
                    os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
                    file_obj = open(log_path, "w", encoding="utf-8")
                file_obj.write(line + "\n")
                file_obj.flush()
                os.fsync(file_obj.fileno())

                marker = consume_line(outcome, line)
                if marker is not None and marker.message:
                    self.logger.log(marker.log_level, marker.message)
        except OSError as exc:
            raise ClassificationError(f"Could not write logs into file '{log_path}': {exc}") from exc
        finally:
            if file_obj is not None:
                file_obj.close()
        return outcome

    def classify(self, pod_name: str):
        self.console.print(f"[blue]Getting logs of pod {pod_name}[/blue]")
        process = self.command_runner.start(
            ["kubectl", "logs", pod_name, "-c", self.container, "-f"]
        )

        drain_error: Optional[ClassificationError] = None
        stderr_outcome = stdout_outcome = None

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="installer-stdout") as executor:
            stdout_future = executor.submit(self.drain, process.stdout, self.stdout_log)

            try:
                try:
                    stderr_outcome = self.drain(process.stderr, self.stderr_log)
                except ClassificationError as exc:
                    drain_error = exc
                    process.kill()

                try:
                    stdout_outcome = stdout_future.result()
                except ClassificationError as exc:
                    if drain_error is None:
                        drain_error = exc
                        process.kill()
            except KeyboardInterrupt:
                # Closing the pipes lets the stdout worker finish before the executor joins it.
                process.kill()
                process.wait()
                raise

        returncode = process.wait()

        if drain_error is not None:
            raise ClassificationError(
                f"{drain_error} Logs captured so far: {self.stdout_log}, {self.stderr_log}"
            ) from drain_error

        if returncode != 0:
            raise ClassificationError(
                f"Could not get installer pod logs: 'kubectl logs' exited with code {returncode}. "
                f"Logs captured so far: {self.stdout_log}, {self.stderr_log}"
            )

        self.logger.debug(
            "Installer log lines: stdout=%s stderr=%s",
            stdout_outcome.line_count,
            stderr_outcome.line_count,
        )
        if not (stdout_outcome.succeeded and stderr_outcome.succeeded):
            raise ClassificationError(
                actionable_error(
                    "installation_failed",
                    stdout_log=self.stdout_log,
                    stderr_log=self.stderr_log,
                )
            )

        self.console.print("[green]keptn installation completed.[/green]")
        result = self.run_cmd(
            ["kubectl", "delete", "deployment", INSTALLER_DEPLOYMENT],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            self.logger.warning(
                "Could not delete the installer deployment: %s", (result.stderr or "").strip()
            )
