"""
config
------

raw 문자열 입력(GitHub Actions 의 INPUT_* 환경변수 또는 로컬 .env 파일)을 읽어
타입이 있는 DeploymentRequest 로 바꾸는 경계 계층.

서로 배타적인 입력(service/job, image/source, revision/tag traffic)과
enum 형태 입력(update strategy, gcloud component)은 여기서 검증한다.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml
from dotenv import dotenv_values, load_dotenv

from . import __version__
from .errors import ConfigurationError
from .kv_utils import parse_bool, parse_csv, parse_kv_string
from .models import (
    ByRevision,
    ByTag,
    DeploymentRequest,
    GcloudComponent,
    Image,
    ImageSource,
    Job,
    MetadataFile,
    Service,
    SourceDirectory,
    Target,
    TrafficSpec,
    UpdateStrategy,
)


ENV_FILES_DEFAULT_ORDER = [".env", ".env.deploy"]

DEFAULT_REGION = "us-central1"
METRICS_ENVIRONMENT = "github-actions-deploy-cloudrun"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다. (로컬에서 INPUT_* 값을 흉내낼 때 사용)
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_input(name: str) -> str:
    # GitHub Actions 규칙: 입력 이름을 대문자로, 공백은 '_' 로 바꾼 INPUT_<NAME>
    key = "INPUT_" + name.replace(" ", "_").upper()
    return (os.getenv(key) or "").strip()


@dataclass
class ActionInputs:
    """raw 문자열 그대로의 액션 입력값."""

    image: str = ""
    service: str = ""
    job: str = ""
    metadata: str = ""
    project_id: str = ""
    gcloud_component: str = ""
    env_vars: str = ""
    env_vars_file: str = ""
    env_vars_update_strategy: str = "merge"
    secrets: str = ""
    secrets_update_strategy: str = "merge"
    region: str = DEFAULT_REGION
    source: str = ""
    suffix: str = ""
    tag: str = ""
    timeout: str = ""
    no_traffic: str = ""
    revision_traffic: str = ""
    tag_traffic: str = ""
    labels: str = ""
    skip_default_labels: str = ""
    flags: str = ""
    update_traffic_flags: str = ""
    commit_sha: str = ""

    @classmethod
    def from_env(cls) -> "ActionInputs":
        values: Dict[str, str] = {}
        for f in fields(cls):
            if f.name == "commit_sha":
                continue
            raw = _get_input(f.name)
            if raw:
                values[f.name] = raw
        values["commit_sha"] = os.getenv("GITHUB_SHA", "")
        return cls(**values)


def _parse_update_strategy(name: str, raw: str) -> UpdateStrategy:
    for strategy in UpdateStrategy:
        if raw == strategy.value:
            return strategy
    raise ConfigurationError(
        f"invalid input received for {name}: {raw} (merge | overwrite 중 하나)"
    )


def _parse_gcloud_component(raw: str) -> Optional[GcloudComponent]:
    if not raw:
        return None
    for component in GcloudComponent:
        if raw == component.value:
            return component
    raise ConfigurationError(f"invalid input received for gcloud_component: {raw}")


def _resolve_target(inputs: ActionInputs) -> Target:
    if inputs.service and inputs.job:
        raise ConfigurationError("only one of `service` or `job` inputs can be set.")
    if inputs.metadata:
        return MetadataFile(inputs.metadata, expected_name=inputs.service or inputs.job or None)
    if inputs.job:
        return Job(inputs.job)
    # 트래픽만 지정하고 service 가 빈 경우는 Command Builder 가 "no service name set" 으로 거른다.
    return Service(inputs.service)


def _resolve_image_source(inputs: ActionInputs) -> Optional[ImageSource]:
    if inputs.image and inputs.source:
        raise ConfigurationError("only one of `source` or `image` inputs can be set.")
    if inputs.image:
        return Image(inputs.image)
    if inputs.source:
        return SourceDirectory(inputs.source)
    return None


def _resolve_traffic(inputs: ActionInputs) -> Optional[TrafficSpec]:
    if inputs.revision_traffic and inputs.tag_traffic:
        raise ConfigurationError(
            "only one of `revision_traffic` or `tag_traffic` inputs can be set."
        )
    if inputs.revision_traffic:
        return ByRevision(parse_kv_string(inputs.revision_traffic))
    if inputs.tag_traffic:
        return ByTag(parse_kv_string(inputs.tag_traffic))
    return None


def read_env_vars_file(path: str) -> Dict[str, str]:
    """KEY=VALUE 형식 env 파일을 읽는다. 값이 없는 키는 건너뛴다."""
    if not os.path.isfile(path):
        raise ConfigurationError(f"env_vars_file 을 찾을 수 없습니다: {path}")
    try:
        values = dotenv_values(dotenv_path=path)
    except OSError as e:
        raise ConfigurationError(f"env_vars_file 을 읽을 수 없습니다: {path}: {e}") from e
    return {k: v for k, v in values.items() if v is not None}


def read_metadata_document(path: str) -> Any:
    """Cloud Run 서비스/Job YAML(또는 JSON) 파일을 읽어 파싱한다."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"metadata 파일을 찾을 수 없습니다: {path}") from e
    except OSError as e:
        raise ConfigurationError(f"metadata 파일을 읽을 수 없습니다: {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"metadata 파일 YAML 파싱 실패: {path}: {e}") from e


def build_request(
    inputs: ActionInputs,
    read_env_file: Callable[[str], Dict[str, str]] = read_env_vars_file,
) -> DeploymentRequest:
    """
    raw 입력을 검증하고 DeploymentRequest 를 만든다.

    Raises:
        ConfigurationError: 배타적인 입력이 함께 주어졌거나 enum 값이 잘못된 경우
    """
    target = _resolve_target(inputs)
    image_source = _resolve_image_source(inputs)
    traffic = _resolve_traffic(inputs)

    env_vars_strategy = _parse_update_strategy(
        "env_vars_update_strategy", inputs.env_vars_update_strategy
    )
    secrets_strategy = _parse_update_strategy(
        "secrets_update_strategy", inputs.secrets_update_strategy
    )
    component = _parse_gcloud_component(inputs.gcloud_component)

    env_vars_file: Dict[str, str] = {}
    if inputs.env_vars_file:
        env_vars_file = read_env_file(inputs.env_vars_file)

    return DeploymentRequest(
        target=target,
        image_source=image_source,
        env_vars=parse_kv_string(inputs.env_vars),
        env_vars_file=env_vars_file,
        env_vars_update_strategy=env_vars_strategy,
        secrets=parse_kv_string(inputs.secrets),
        secrets_update_strategy=secrets_strategy,
        labels=parse_kv_string(inputs.labels),
        skip_default_labels=parse_bool(inputs.skip_default_labels),
        commit_sha=inputs.commit_sha or None,
        traffic=traffic,
        revision_suffix=inputs.suffix or None,
        tag=inputs.tag or None,
        timeout=inputs.timeout or None,
        regions=parse_csv(inputs.region or DEFAULT_REGION),
        project_id=inputs.project_id or None,
        no_traffic=parse_bool(inputs.no_traffic),
        flags=inputs.flags or None,
        update_traffic_flags=inputs.update_traffic_flags or None,
        gcloud_component=component,
    )


@dataclass(frozen=True)
class GcloudEnvironment:
    """
    gcloud 프로세스에만 적용할 환경변수 묶음.

    os.environ 을 직접 바꾸지 않고, run_command(env=...) 로 넘길 사본을 만든다.
    """

    metrics_environment: str = METRICS_ENVIRONMENT
    metrics_environment_version: str = __version__
    disable_prompts: bool = True

    def as_overrides(self) -> Dict[str, str]:
        overrides = {
            "CLOUDSDK_METRICS_ENVIRONMENT": self.metrics_environment,
            "CLOUDSDK_METRICS_ENVIRONMENT_VERSION": self.metrics_environment_version,
            "GOOGLE_APIS_USER_AGENT": (
                f"{self.metrics_environment}/{self.metrics_environment_version}"
            ),
        }
        if self.disable_prompts:
            overrides["CLOUDSDK_CORE_DISABLE_PROMPTS"] = "1"
        return overrides

    def to_env(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        env = dict(os.environ if base is None else base)
        env.update(self.as_overrides())
        return env
