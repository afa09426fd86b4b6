"""
kv_utils
--------

KEY=VALUE 문자열 파싱/직렬화, 추가 플래그 토큰화 등
env vars / secrets / labels 가 공통으로 사용하는 헬퍼 모음.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional

from .errors import ConfigurationError


# 따옴표 안은 쪼개지 않고, 따옴표 문자는 그대로 토큰에 남긴다.
_FLAG_TOKEN_RE = re.compile(r'(?:".*?"|[^"\s=]+)+')

# 백슬래시로 이스케이프되지 않은 쉼표/개행
_KV_SEPARATOR_RE = re.compile(r"(?<!\\),|\n")

# 값에 쉼표가 들어 있을 때 gcloud 의 ^DELIM^ 문법으로 바꿔 쓸 구분자 후보
_ALTERNATE_DELIMITERS = ["|", ";", "@", "~", "#", "%"]


def parse_bool(raw: Optional[str], default: bool = False) -> bool:
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_csv(raw: Optional[str]) -> List[str]:
    """
    쉼표 구분 문자열을 리스트로. 각 항목 앞뒤 공백은 제거하고 빈 항목은 버린다.
    """
    if not raw:
        return []
    items = [p.replace("\\,", ",").strip() for p in re.split(r"(?<!\\),", raw)]
    return [i for i in items if i]


def parse_kv_string(raw: Optional[str]) -> Dict[str, str]:
    """
    "FOO=bar,ZIP=zap" 또는 줄바꿈으로 구분된 KEY=VALUE 목록을 순서를 유지한 dict 로 변환.

    - "\\," 는 구분자가 아닌 쉼표 문자로 취급
    - 빈 줄과 '#' 으로 시작하는 줄은 무시
    - '=' 가 없는 항목은 ConfigurationError
    """
    result: Dict[str, str] = {}
    raw = (raw or "").strip()
    if not raw:
        return result

    for piece in _KV_SEPARATOR_RE.split(raw):
        line = piece.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise ConfigurationError(f'KEY=VALUE 형식이 아닙니다: "{line}" ("=" 누락)')
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            raise ConfigurationError(f'KEY=VALUE 항목의 키가 비어 있습니다: "{line}"')
        result[key] = value.strip().replace("\\,", ",")

    return result


def merge_kv(base: Mapping[str, str], override: Mapping[str, str]) -> Dict[str, str]:
    """
    base 위에 override 를 덮어쓴 새 dict. 키 충돌 시 override 가 이긴다.

    순서는 base 의 키 순서를 먼저 유지하고, override 에만 있는 키를 뒤에 붙인다.
    """
    merged: Dict[str, str] = dict(base)
    merged.update(override)
    return merged


def join_kv(values: Mapping[str, str]) -> str:
    """
    gcloud 플래그용 "k1=v1,k2=v2" 직렬화 (삽입 순서 유지).

    키/값 중 쉼표가 포함된 항목이 있으면 gcloud 의 대체 구분자 문법
    (예: "^|^k1=a,b|k2=v2") 을 사용한다.
    """
    if not values:
        return ""

    pairs = [f"{k}={v}" for k, v in values.items()]
    if not any("," in p for p in pairs):
        return ",".join(pairs)

    for delim in _ALTERNATE_DELIMITERS:
        if not any(delim in p for p in pairs):
            return f"^{delim}^" + delim.join(pairs)

    raise ConfigurationError(
        "KEY=VALUE 목록에 사용할 수 있는 구분자가 없습니다: "
        + ", ".join(sorted(values.keys()))
    )


def parse_flags(raw: Optional[str]) -> List[str]:
    """
    자유 형식 플래그 문자열을 gcloud 인자 리스트로 토큰화.

    공백 또는 '=' 로 나누되 큰따옴표 안은 나누지 않는다. 따옴표는 토큰에 그대로 남는다.

    >>> parse_flags('--concurrency 2 --memory="2 Gi"')
    ['--concurrency', '2', '--memory', '"2 Gi"']
    """
    if not raw:
        return []
    return [m.group(0) for m in _FLAG_TOKEN_RE.finditer(raw)]
