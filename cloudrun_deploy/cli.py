import os
import sys

import click

from .config import ActionInputs, GcloudEnvironment, build_request, load_env_files
from .errors import ConfigurationError, DeployError
from .gcp_cloud_run import build_command_plan
from .logging_utils import setup_logging, get_logger
from .models import DeploymentRequest, DeploymentResult
from .orchestrator import apply_plan, render_plan


logger = get_logger(__name__)

CREDENTIALS_ENV = "GOOGLE_GHA_CREDS_PATH"


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리). .env / .env.deploy 를 여기서 읽습니다.",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """Cloud Run 서비스 / Job 배포용 CI 단계 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _load_request_from_ctx(ctx: click.Context) -> DeploymentRequest:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    inputs = ActionInputs.from_env()
    logger.debug("Inputs loaded: %s", inputs)
    return build_request(inputs)


def write_outputs(result: DeploymentResult) -> None:
    """
    GITHUB_OUTPUT 파일이 있으면 url=<값> 을 추가하고, 없으면 stdout 으로 출력한다.
    url 이 없으면 빈 값으로 쓴다.
    """
    line = f"url={result.url or ''}"
    output_path = os.getenv("GITHUB_OUTPUT")
    if output_path:
        with open(output_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
        return
    click.echo(line)


def _fail(prefix: str, err: Exception) -> None:
    logger.error("%s: %s", prefix, err)
    click.echo(f"[ERROR] {prefix}: {err}", err=True)
    sys.exit(1)


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """입력값으로 만들어질 gcloud 명령을 실행 없이 출력"""
    try:
        request = _load_request_from_ctx(ctx)
        command_plan = build_command_plan(request)
    except ConfigurationError as e:
        _fail("설정 오류", e)
        return

    click.echo(render_plan(command_plan))


@main.command(name="deploy")
@click.pass_context
def deploy(ctx: click.Context) -> None:
    """gcloud 명령을 실제로 실행하여 배포하고 url 출력값을 기록"""
    try:
        request = _load_request_from_ctx(ctx)
        command_plan = build_command_plan(request)
    except ConfigurationError as e:
        _fail("설정 오류", e)
        return

    if not os.getenv(CREDENTIALS_ENV):
        logger.warning(
            "인증 정보를 찾지 못했습니다. google-github-actions/auth 로 먼저 인증하세요."
        )

    try:
        result = apply_plan(
            command_plan,
            tag=request.tag,
            env=GcloudEnvironment().to_env(),
        )
    except DeployError as e:
        _fail("배포 실패", e)
        return
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        _fail("배포 실패", e)
        return

    write_outputs(result)
