from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Sequence

from .errors import ExternalProcessError
from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def command_string(cmd: Sequence[str]) -> str:
    return " ".join(cmd)


def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = 900.0,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    stdout/stderr 를 캡처해서 돌려준다. exit code 가 0 이 아니면
    실행한 명령 문자열과 stderr 를 담은 ExternalProcessError 를 던진다.
    """
    cmd_str = command_string(cmd)
    logger.info("명령 실행: %s", cmd_str)
    logger.debug("명령 인자: %s", shlex.join(list(cmd)))

    try:
        result = subprocess.run(  # noqa: S603
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise ExternalProcessError(
            cmd_str,
            127,
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud 가 설치되어 있는지 확인하세요)",
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ExternalProcessError(
            cmd_str,
            -1,
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다",
        ) from e

    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if stdout:
        logger.debug("명령 stdout: %s", shorten(stdout.strip(), width=2000))
    if stderr:
        logger.debug("명령 stderr: %s", shorten(stderr.strip(), width=2000))

    if result.returncode != 0:
        raise ExternalProcessError(cmd_str, result.returncode, stderr)

    return RunResult(returncode=result.returncode, stdout=stdout, stderr=stderr)
