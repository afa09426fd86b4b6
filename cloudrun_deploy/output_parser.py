"""
output_parser
-------------

gcloud run 명령의 JSON 출력(--format json)에서 최종 출력값(url)을 뽑아낸다.

- deploy / replace       : 서비스 또는 Job 리소스 descriptor (dict)
- services update-traffic : 트래픽 할당 항목 리스트 (list)

빈 출력("", "{}", "[]")은 오류가 아니라 url 이 없는 결과로 취급한다.
JSON 이 아닌 출력만 ParseError 가 된다.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from .errors import ParseError
from .logging_utils import get_logger
from .models import DeploymentResult, ResponseShape


logger = get_logger(__name__)


_BLANK_OUTPUTS = {"", "{}", "[]"}


def is_blank_output(stdout: Optional[str]) -> bool:
    if stdout is None:
        return True
    return stdout.strip() in _BLANK_OUTPUTS


def _load_json(stdout: str, shape: ResponseShape, context: Mapping[str, Any]) -> Any:
    try:
        return json.loads(stdout)
    except json.JSONDecodeError as e:
        raise ParseError(str(e), stdout=stdout, shape=shape, context=context) from e


def _as_url(value: Any) -> Optional[str]:
    # 문자열이 아닌 값(null, 객체 등)은 url 로 쓰지 않는다.
    return value if isinstance(value, str) and value else None


def parse_deploy_response(stdout: Optional[str], tag: Optional[str] = None) -> DeploymentResult:
    """
    deploy/replace 응답 파싱.

    기본 url 은 status.url 이고, tag 가 주어지면 status.traffic 에서 같은 tag 의 url 을 우선한다.
    tag 를 찾지 못하면 기본 url 을 유지한다. (tag 반영이 늦을 수 있음)
    status 나 traffic 이 예상한 모양이 아니면 url 이 없는 것으로 본다.
    """
    context = {"tag": tag} if tag else {}
    shape = ResponseShape.SERVICE_OR_JOB_DESCRIPTOR
    if stdout is None or is_blank_output(stdout):
        return DeploymentResult()

    resource = _load_json(stdout, shape, context)
    if not isinstance(resource, Mapping):
        raise ParseError(
            f"리소스 descriptor 는 JSON 객체여야 합니다 (got {type(resource).__name__})",
            stdout=stdout,
            shape=shape,
            context=context,
        )

    status = resource.get("status")
    if not isinstance(status, Mapping):
        logger.debug("status 가 객체가 아니라 url 을 찾지 않습니다: %r", status)
        return DeploymentResult()

    url = _as_url(status.get("url"))

    if tag:
        traffic = status.get("traffic")
        for item in traffic if isinstance(traffic, list) else []:
            if isinstance(item, Mapping) and item.get("tag") == tag:
                url = _as_url(item.get("url"))
                break
        else:
            logger.info("traffic 목록에서 tag 를 찾지 못해 기본 URL 을 사용합니다: %s", tag)

    return DeploymentResult(url=url)


def parse_update_traffic_response(stdout: Optional[str]) -> DeploymentResult:
    """
    update-traffic 응답 파싱.

    기본 url 은 첫 항목의 serviceUrl. 배열 순서대로 훑어서 urls 가 비어 있지 않은
    첫 항목이 있으면 그 첫 url(태그 URL)을 사용한다. urls 가 배열이 아니면 건너뛴다.
    """
    shape = ResponseShape.TRAFFIC_ASSIGNMENT_LIST
    if stdout is None or is_blank_output(stdout):
        return DeploymentResult()

    items = _load_json(stdout, shape, {})
    if not isinstance(items, list):
        raise ParseError(
            f"트래픽 할당 응답은 JSON 배열이어야 합니다 (got {type(items).__name__})",
            stdout=stdout,
            shape=shape,
        )
    if not items:
        return DeploymentResult()

    first = items[0]
    url = _as_url(first.get("serviceUrl")) if isinstance(first, Mapping) else None

    for item in items:
        urls = item.get("urls") if isinstance(item, Mapping) else None
        if isinstance(urls, list) and urls:
            url = _as_url(urls[0])
            break

    return DeploymentResult(url=url)


def parse_response(
    shape: ResponseShape,
    stdout: Optional[str],
    context: Optional[Mapping[str, Any]] = None,
) -> DeploymentResult:
    """
    Command Builder 가 정한 응답 형태에 맞는 파서로 위임한다.

    context 는 {"tag": ...} 형태로 deploy 응답 파싱에만 사용된다.
    """
    if shape is ResponseShape.TRAFFIC_ASSIGNMENT_LIST:
        return parse_update_traffic_response(stdout)
    tag = (context or {}).get("tag")
    return parse_deploy_response(stdout, tag=tag or None)
