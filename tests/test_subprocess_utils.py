from __future__ import annotations

import sys

import pytest

from cloudrun_deploy.errors import ExternalProcessError
from cloudrun_deploy.subprocess_utils import run_command


def test_run_command_captures_stdout() -> None:
    result = run_command([sys.executable, "-c", "print('{\"status\": {}}')"], timeout=30)

    assert result.returncode == 0
    assert result.stdout.strip() == '{"status": {}}'


def test_run_command_passes_env() -> None:
    cmd = [sys.executable, "-c", "import os; print(os.environ['CLOUDSDK_CORE_DISABLE_PROMPTS'])"]
    result = run_command(cmd, env={"CLOUDSDK_CORE_DISABLE_PROMPTS": "1"}, timeout=30)
    assert result.stdout.strip() == "1"


def test_run_command_non_zero_exit_includes_command_and_stderr() -> None:
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('ERROR: denied'); sys.exit(3)"]

    with pytest.raises(ExternalProcessError) as excinfo:
        run_command(cmd, timeout=30)

    err = excinfo.value
    assert err.returncode == 3
    assert "ERROR: denied" in str(err)
    assert " ".join(cmd) in str(err)


def test_run_command_non_zero_exit_without_stderr() -> None:
    with pytest.raises(ExternalProcessError) as excinfo:
        run_command([sys.executable, "-c", "import sys; sys.exit(2)"], timeout=30)
    assert "command exited 2, but stderr had no output" in str(excinfo.value)


def test_run_command_missing_binary() -> None:
    with pytest.raises(ExternalProcessError) as excinfo:
        run_command(["definitely-not-a-real-gcloud-binary", "run"], timeout=30)
    assert "definitely-not-a-real-gcloud-binary" in str(excinfo.value)
