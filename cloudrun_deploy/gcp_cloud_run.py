"""
gcp_cloud_run
-------------

Cloud Run 서비스 및 Cloud Run Job 배포 명령(gcloud run ...)을 조립하는 모듈.

DeploymentRequest 하나를 받아 실행 순서대로 나열된 인자 벡터(CommandPlan)를 만든다.
이 모듈은 gcloud 를 직접 실행하지 않는다. metadata 파일은 주입받은 read_document
(기본값 config.read_metadata_document)로 한 번만 읽는다.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import read_metadata_document
from .errors import ConfigurationError
from .kv_utils import join_kv, merge_kv, parse_flags
from .logging_utils import get_logger
from .models import (
    ByRevision,
    ByTag,
    CommandPlan,
    DeploymentRequest,
    GcloudComponent,
    Image,
    Job,
    MetadataFile,
    PlannedCommand,
    ResponseShape,
    Service,
    SourceDirectory,
    TrafficSpec,
    UpdateStrategy,
)


logger = get_logger(__name__)


DEFAULT_MANAGED_BY = "github-actions"

ReadDocument = Callable[[str], Any]


def default_labels(commit_sha: Optional[str]) -> Dict[str, str]:
    """
    기본 라벨. Cloud Run 라벨 값은 소문자만 허용되므로 소문자로 바꾸고,
    값이 비어 있는 항목은 넣지 않는다.
    """
    raw = {
        "managed-by": DEFAULT_MANAGED_BY,
        "commit-sha": commit_sha,
    }
    return {k: v.lower() for k, v in raw.items() if v}


def compile_labels(request: DeploymentRequest) -> Dict[str, str]:
    base = {} if request.skip_default_labels else default_labels(request.commit_sha)
    return merge_kv(base, request.labels)


def compile_env_vars(request: DeploymentRequest) -> Dict[str, str]:
    # 파일에서 읽은 값 위에 명시적으로 준 KEY=VALUE 가 덮어쓴다.
    return merge_kv(request.env_vars_file, request.env_vars)


def _env_vars_flag(strategy: UpdateStrategy) -> str:
    if strategy is UpdateStrategy.OVERWRITE:
        return "--set-env-vars"
    return "--update-env-vars"


def _secrets_flag(strategy: UpdateStrategy) -> str:
    if strategy is UpdateStrategy.OVERWRITE:
        return "--set-secrets"
    return "--update-secrets"


def _validate(request: DeploymentRequest) -> None:
    """
    raw 입력 경계(config.build_request)에서 걸러지지 않는 교차 필드 불변식 검사.
    하나라도 어긋나면 명령을 하나도 만들지 않고 실패한다.
    """
    if request.traffic is not None:
        if not isinstance(request.target, Service) or not request.target.name:
            raise ConfigurationError("no service name set: 트래픽 지정에는 service 이름이 필요합니다.")

    for label, strategy in (
        ("env_vars_update_strategy", request.env_vars_update_strategy),
        ("secrets_update_strategy", request.secrets_update_strategy),
    ):
        if not isinstance(strategy, UpdateStrategy):
            raise ConfigurationError(
                f"{label} 값이 올바르지 않습니다: {strategy!r} (merge | overwrite 중 하나)"
            )

    if request.gcloud_component is not None and not isinstance(
        request.gcloud_component, GcloudComponent
    ):
        raise ConfigurationError(
            f"invalid input received for gcloud_component: {request.gcloud_component}"
        )

    target = request.target
    if isinstance(target, (Service, Job)) and not target.name:
        raise ConfigurationError("service 또는 job 이름이 비어 있습니다.")

    if isinstance(target, Job) and request.image_source is None:
        raise ConfigurationError(f"Cloud Run Job 배포에는 image 또는 source 가 필요합니다: {target.name}")

    if isinstance(target, Service) and request.image_source is None and request.traffic is None:
        raise ConfigurationError(
            f"Cloud Run 서비스 배포에는 image 또는 source 가 필요합니다: {target.name}"
        )


def _push_image_source(cmd: List[str], request: DeploymentRequest) -> None:
    source = request.image_source
    if isinstance(source, Image):
        cmd += ["--image", source.reference]
    elif isinstance(source, SourceDirectory):
        cmd += ["--source", source.path]


def _push_env_vars(cmd: List[str], request: DeploymentRequest) -> None:
    env_vars = compile_env_vars(request)
    if env_vars:
        cmd += [_env_vars_flag(request.env_vars_update_strategy), join_kv(env_vars)]


def _push_secrets(cmd: List[str], secrets: Mapping[str, str], flag: str) -> None:
    if secrets:
        cmd += [flag, join_kv(secrets)]


def _common_suffix(request: DeploymentRequest, extra_flags: List[Optional[str]]) -> List[str]:
    suffix = ["--format", "json"]

    regions = [r.strip() for r in request.regions if r and r.strip()]
    if regions:
        suffix += ["--region", ",".join(regions)]

    if request.project_id:
        suffix += ["--project", request.project_id]

    # 사용자 플래그는 맨 마지막에 붙여 앞에서 만든 값을 덮어쓸 수 있게 한다.
    for flags in extra_flags:
        suffix += parse_flags(flags)

    return suffix


def _with_component(request: DeploymentRequest, args: List[str]) -> List[str]:
    if request.gcloud_component is None:
        return args
    return [request.gcloud_component.value, *args]


def _finish(
    request: DeploymentRequest,
    args: List[str],
    shape: ResponseShape,
    extra_flags: List[Optional[str]],
) -> PlannedCommand:
    full = args + _common_suffix(request, extra_flags)
    return PlannedCommand(args=_with_component(request, full), shape=shape)


def _warn_ignored_with_metadata(request: DeploymentRequest) -> None:
    ignored = {
        "image": isinstance(request.image_source, Image),
        "source": isinstance(request.image_source, SourceDirectory),
        "env_vars": bool(request.env_vars or request.env_vars_file),
        "secrets": bool(request.secrets),
        "labels": bool(request.labels),
        "tag": bool(request.tag),
        "suffix": bool(request.revision_suffix),
        "timeout": bool(request.timeout),
        "no_traffic": request.no_traffic,
    }
    names = [name for name, is_set in ignored.items() if is_set]
    if names:
        logger.warning(
            "metadata 파일이 우선하므로 다음 입력은 무시됩니다: %s", ", ".join(names)
        )


def build_metadata_command(
    request: DeploymentRequest,
    target: MetadataFile,
    read_document: ReadDocument,
) -> List[str]:
    document = read_document(target.path)
    if not isinstance(document, Mapping):
        raise ConfigurationError(f"metadata 파일을 해석할 수 없습니다: {target.path}")

    kind = document.get("kind")
    metadata = document.get("metadata") or {}
    declared_name = metadata.get("name") if isinstance(metadata, Mapping) else None

    if target.expected_name and declared_name != target.expected_name:
        raise ConfigurationError(
            f"metadata 파일의 이름({declared_name!r})이 입력한 이름({target.expected_name!r})과 다릅니다."
        )

    _warn_ignored_with_metadata(request)

    if kind == "Service":
        return ["run", "services", "replace", target.path]
    if kind == "Job":
        return ["run", "jobs", "replace", target.path]
    raise ConfigurationError(f'알 수 없는 metadata kind 입니다: "{kind}" (Service | Job 중 하나)')


def build_job_command(request: DeploymentRequest, job: Job) -> List[str]:
    logger.warning(
        "Cloud Run Job 지원은 beta 이며 하위 호환성이 보장되지 않습니다: %s", job.name
    )
    cmd = ["run", "jobs", "deploy", job.name]
    _push_image_source(cmd, request)
    _push_env_vars(cmd, request)

    # jobs 에는 --update-secrets 가 없으므로 항상 --set-secrets 로 보낸다.
    if request.secrets and request.secrets_update_strategy is UpdateStrategy.MERGE:
        logger.warning(
            "Cloud Run Job 은 secret 병합(merge)을 지원하지 않아 --set-secrets 로 전환합니다."
        )
    _push_secrets(cmd, request.secrets, "--set-secrets")

    service_only = {
        "tag": request.tag,
        "suffix": request.revision_suffix,
        "timeout": request.timeout,
        "no_traffic": request.no_traffic,
    }
    ignored = [name for name, value in service_only.items() if value]
    if ignored:
        logger.warning("Cloud Run Job 배포에서는 다음 입력이 무시됩니다: %s", ", ".join(ignored))

    labels = compile_labels(request)
    if labels:
        cmd += ["--labels", join_kv(labels)]
    return cmd


def build_service_deploy_command(request: DeploymentRequest, service: Service) -> List[str]:
    cmd = ["run", "deploy", service.name]
    _push_image_source(cmd, request)
    _push_env_vars(cmd, request)
    _push_secrets(cmd, request.secrets, _secrets_flag(request.secrets_update_strategy))

    if request.tag:
        cmd += ["--tag", request.tag]
    if request.revision_suffix:
        cmd += ["--revision-suffix", request.revision_suffix]
    if request.no_traffic:
        cmd.append("--no-traffic")
    if request.timeout:
        cmd += ["--timeout", request.timeout]

    labels = compile_labels(request)
    if labels:
        cmd += ["--update-labels", join_kv(labels)]
    return cmd


def build_update_traffic_command(service: Service, traffic: TrafficSpec) -> List[str]:
    cmd = ["run", "services", "update-traffic", service.name]
    if isinstance(traffic, ByRevision):
        cmd += ["--to-revisions", join_kv(traffic.assignments)]
    elif isinstance(traffic, ByTag):
        cmd += ["--to-tags", join_kv(traffic.assignments)]
    return cmd


def build_command_plan(
    request: DeploymentRequest,
    read_document: Optional[ReadDocument] = None,
) -> CommandPlan:
    """
    DeploymentRequest 를 gcloud 인자 벡터 1~2개로 변환한다.

    분기 우선순위 (먼저 일치하는 것 사용):
      1. metadata 파일  -> services/jobs replace
      2. job            -> jobs deploy
      3. service        -> deploy
      4. service + 트래픽만 -> services update-traffic
      5. service + 이미지 + 트래픽 -> deploy 후 update-traffic

    Raises:
        ConfigurationError: 옵션이 서로 충돌하거나 필수값이 없을 때
    """
    _validate(request)
    target = request.target
    descriptor = ResponseShape.SERVICE_OR_JOB_DESCRIPTOR
    traffic_list = ResponseShape.TRAFFIC_ASSIGNMENT_LIST

    if isinstance(target, MetadataFile):
        args = build_metadata_command(request, target, read_document or read_metadata_document)
        return CommandPlan([_finish(request, args, descriptor, [request.flags])])

    if isinstance(target, Job):
        args = build_job_command(request, target)
        return CommandPlan([_finish(request, args, descriptor, [request.flags])])

    if isinstance(target, Service):
        if request.traffic is None:
            args = build_service_deploy_command(request, target)
            return CommandPlan([_finish(request, args, descriptor, [request.flags])])

        traffic_args = build_update_traffic_command(target, request.traffic)
        if request.image_source is None:
            traffic = _finish(
                request, traffic_args, traffic_list, [request.flags, request.update_traffic_flags]
            )
            return CommandPlan([traffic])

        deploy = _finish(
            request, build_service_deploy_command(request, target), descriptor, [request.flags]
        )
        traffic = _finish(request, traffic_args, traffic_list, [request.update_traffic_flags])
        return CommandPlan([deploy, traffic])

    raise ConfigurationError(f"알 수 없는 배포 대상입니다: {target!r}")
