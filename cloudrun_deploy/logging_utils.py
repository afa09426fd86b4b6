import logging
import os
import sys


_WORKFLOW_COMMANDS = {
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def is_github_actions() -> bool:
    return _env_flag("GITHUB_ACTIONS")


class WorkflowCommandFormatter(logging.Formatter):
    """
    GitHub Actions 러너에서는 WARNING/ERROR 를 ::warning:: / ::error:: 로 출력해
    워크플로 화면에 annotation 으로 보이게 한다.
    """

    def format(self, record: logging.LogRecord) -> str:
        command = _WORKFLOW_COMMANDS.get(record.levelno)
        if command is None:
            return super().format(record)
        message = record.getMessage().replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"::{command}::{message}"


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1 or _env_flag("ACTIONS_STEP_DEBUG") or _env_flag("ACTIONS_RUNNER_DEBUG"):
        level = logging.DEBUG

    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    handler = logging.StreamHandler(sys.stdout)
    if is_github_actions():
        handler.setFormatter(WorkflowCommandFormatter(fmt))
    else:
        handler.setFormatter(logging.Formatter(fmt))

    logging.basicConfig(level=level, handlers=[handler], force=True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
