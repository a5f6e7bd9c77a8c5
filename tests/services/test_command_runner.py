import sys

import pytest

from keptninstaller.errors import InstallerError, PreconditionError
from keptninstaller.services.command_runner import CommandRunner


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


def test_command_runner_raises_with_stderr():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(InstallerError, match="forbidden"):
        runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('forbidden'); sys.exit(1)"],
            check=True,
            capture_output=True,
        )


def test_command_runner_returns_when_check_disabled():
    runner = CommandRunner(logger=DummyLogger())

    result = runner.run(
        [sys.executable, "-c", "import sys; sys.exit(3)"],
        check=False,
        capture_output=True,
    )

    assert result.returncode == 3


def test_command_runner_timeout_raises_error():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(InstallerError, match="timed out"):
        runner.run(
            [sys.executable, "-c", "import time; time.sleep(2)"],
            check=True,
            capture_output=True,
            timeout=0.1,
        )


def test_missing_executable_is_a_precondition_error():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(PreconditionError, match="Required command not found: kubectl-does-not-exist"):
        runner.run(["kubectl-does-not-exist", "version"], capture_output=True)


def test_start_exposes_both_pipes():
    runner = CommandRunner(logger=DummyLogger())

    process = runner.start(
        [sys.executable, "-c", "import sys; print('out'); sys.stderr.write('err\\n')"]
    )
    stdout, stderr = process.communicate()

    assert process.returncode == 0
    assert stdout.strip() == "out"
    assert stderr.strip() == "err"
