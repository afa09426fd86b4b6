"""
errors
------

배포 단계에서 발생하는 예외 계층.

- ConfigurationError : 입력 옵션이 잘못되었거나 서로 충돌 (gcloud 실행 전에 감지)
- ParseError         : gcloud 가 JSON 이 아닌 출력을 돌려줌
- ExternalProcessError : gcloud 가 0 이 아닌 exit code 로 종료
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional


class DeployError(Exception):
    """cloudrun_deploy 에서 발생하는 모든 예외의 공통 부모."""


class ConfigurationError(DeployError, ValueError):
    pass


class ParseError(DeployError, ValueError):
    """
    gcloud 출력 파싱 실패.

    디버깅을 위해 원본 stdout, 응답 형태, 파싱에 사용한 입력값을 모두 보관하고
    메시지에도 그대로 포함한다.
    """

    def __init__(
        self,
        reason: str,
        *,
        stdout: str,
        shape: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.reason = reason
        self.stdout = stdout
        self.shape = shape
        self.context = dict(context or {})
        shape_name = getattr(shape, "value", shape)
        super().__init__(
            f"{shape_name} 응답 파싱 실패: {reason}, "
            f"stdout: {stdout}, inputs: {json.dumps(self.context, sort_keys=True)}"
        )


class ExternalProcessError(DeployError, RuntimeError):
    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"command exited {returncode}, but stderr had no output"
        super().__init__(f"gcloud 명령 실행 실패 `{command}`: {detail}")
