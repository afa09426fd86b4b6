"""
models
------

Command Builder / Response Parser 가 주고받는 타입 정의.

배포 대상, 이미지 소스, 트래픽 지정은 서로 배타적인 변형(variant)을 가지므로
nullable 필드 여러 개 대신 작은 frozen dataclass 들의 Union 으로 표현한다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from .subprocess_utils import command_string as _command_string


# -----------------------------
# 배포 대상 (정확히 하나)
# -----------------------------
@dataclass(frozen=True)
class Service:
    name: str


@dataclass(frozen=True)
class Job:
    name: str


@dataclass(frozen=True)
class MetadataFile:
    path: str
    # service/job 입력으로 함께 주어진 이름. 파일의 metadata.name 과 같아야 한다.
    expected_name: Optional[str] = None


Target = Union[Service, Job, MetadataFile]


# -----------------------------
# 이미지 소스
# -----------------------------
@dataclass(frozen=True)
class Image:
    reference: str


@dataclass(frozen=True)
class SourceDirectory:
    path: str


ImageSource = Union[Image, SourceDirectory]


# -----------------------------
# 트래픽 지정
# -----------------------------
@dataclass(frozen=True)
class ByRevision:
    assignments: Dict[str, str]


@dataclass(frozen=True)
class ByTag:
    assignments: Dict[str, str]


TrafficSpec = Union[ByRevision, ByTag]


class UpdateStrategy(str, Enum):
    MERGE = "merge"
    OVERWRITE = "overwrite"


class GcloudComponent(str, Enum):
    ALPHA = "alpha"
    BETA = "beta"


class ResponseShape(str, Enum):
    SERVICE_OR_JOB_DESCRIPTOR = "service_or_job_descriptor"
    TRAFFIC_ASSIGNMENT_LIST = "traffic_assignment_list"


def is_volume_secret(key: str) -> bool:
    """'/' 로 시작하는 키는 볼륨 마운트 경로, 그 외는 환경변수 기반 secret."""
    return key.startswith("/")


@dataclass(frozen=True)
class DeploymentRequest:
    target: Target
    image_source: Optional[ImageSource] = None

    env_vars: Dict[str, str] = field(default_factory=dict)
    env_vars_file: Dict[str, str] = field(default_factory=dict)
    env_vars_update_strategy: UpdateStrategy = UpdateStrategy.MERGE

    secrets: Dict[str, str] = field(default_factory=dict)
    secrets_update_strategy: UpdateStrategy = UpdateStrategy.MERGE

    labels: Dict[str, str] = field(default_factory=dict)
    skip_default_labels: bool = False
    commit_sha: Optional[str] = None

    traffic: Optional[TrafficSpec] = None

    revision_suffix: Optional[str] = None
    tag: Optional[str] = None
    timeout: Optional[str] = None
    regions: List[str] = field(default_factory=lambda: ["us-central1"])
    project_id: Optional[str] = None
    no_traffic: bool = False

    flags: Optional[str] = None
    update_traffic_flags: Optional[str] = None
    gcloud_component: Optional[GcloudComponent] = None


@dataclass(frozen=True)
class PlannedCommand:
    args: List[str]
    shape: ResponseShape

    def command_string(self, tool: str = "gcloud") -> str:
        return _command_string([tool, *self.args])


@dataclass(frozen=True)
class CommandPlan:
    """
    실행 순서대로 나열된 gcloud 명령 목록 (1개 또는 2개).

    두 번째 명령(update-traffic)은 첫 번째 배포가 성공했을 때만 실행해야 한다.
    """

    commands: List[PlannedCommand]

    @property
    def primary(self) -> PlannedCommand:
        return self.commands[0]

    def __len__(self) -> int:
        return len(self.commands)

    def __iter__(self):  # noqa: ANN204
        return iter(self.commands)


@dataclass(frozen=True)
class DeploymentResult:
    url: Optional[str] = None
