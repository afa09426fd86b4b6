from __future__ import annotations

from typing import Callable, List, Mapping, Optional

from .gcp_cloud_run import ReadDocument, build_command_plan
from .logging_utils import get_logger
from .models import CommandPlan, DeploymentRequest, DeploymentResult, ResponseShape
from .output_parser import parse_response
from .subprocess_utils import RunResult, run_command


logger = get_logger(__name__)

GCLOUD_TOOL = "gcloud"

Runner = Callable[..., RunResult]


_SHAPE_LABELS = {
    ResponseShape.SERVICE_OR_JOB_DESCRIPTOR: "deploy",
    ResponseShape.TRAFFIC_ASSIGNMENT_LIST: "update-traffic",
}


def render_plan(plan: CommandPlan, tool: str = GCLOUD_TOOL) -> str:
    """
    실행될 gcloud 명령들을 순서대로 요약한 텍스트를 리턴한다.
    실제 gcloud 호출은 하지 않는다.
    """
    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- commands: {len(plan)}")
    lines.append("")

    lines.append("## Commands")
    for idx, cmd in enumerate(plan, start=1):
        lines.append(f"{idx}. [{_SHAPE_LABELS[cmd.shape]}] {cmd.command_string(tool)}")

    if len(plan) > 1:
        lines.append("")
        lines.append("트래픽 변경은 배포가 성공한 뒤에만 실행됩니다.")

    return "\n".join(lines)


def apply_plan(
    plan: CommandPlan,
    *,
    tag: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    runner: Runner = run_command,
    tool: str = GCLOUD_TOOL,
) -> DeploymentResult:
    """
    plan 의 명령을 순서대로 하나씩 실행하고, url 이 있는 마지막 응답의 url 을 쓴다.
    뒤 응답이 비어 있으면 앞 명령이 돌려준 url 을 유지한다.

    앞 명령이 실패하면(ExternalProcessError) 뒤 명령은 실행하지 않는다.
    update-traffic 은 배포가 만든 revision 을 대상으로 하기 때문.
    """
    result = DeploymentResult()
    for idx, cmd in enumerate(plan, start=1):
        logger.info("gcloud 명령 실행 (%d/%d): %s", idx, len(plan), _SHAPE_LABELS[cmd.shape])
        output = runner([tool, *cmd.args], env=env)
        parsed = parse_response(cmd.shape, output.stdout, {"tag": tag} if tag else None)
        logger.debug("파싱 결과 (%d/%d): %s", idx, len(plan), parsed)
        if parsed.url or not result.url:
            result = parsed

    if result.url:
        logger.info("배포 URL: %s", result.url)
    else:
        logger.info("gcloud 출력에서 URL 을 찾지 못했습니다.")
    return result


def deploy(
    request: DeploymentRequest,
    *,
    env: Optional[Mapping[str, str]] = None,
    runner: Runner = run_command,
    read_document: Optional[ReadDocument] = None,
) -> DeploymentResult:
    """build_command_plan + apply_plan 을 한 번에 수행한다."""
    plan = build_command_plan(request, read_document=read_document)
    return apply_plan(plan, tag=request.tag, env=env, runner=runner)

