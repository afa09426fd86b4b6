"""
pytest 설정:

로컬 환경에 다른 버전의 cloudrun_deploy 가 설치되어 있어도
테스트는 항상 현재 레포의 소스를 대상으로 하도록 repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import os
import sys

import pytest


FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@pytest.fixture
def fixture_path():
    def _path(name: str) -> str:
        return os.path.join(FIXTURES_DIR, name)

    return _path


@pytest.fixture(autouse=True)
def _clean_action_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # 러너 환경의 INPUT_* / GITHUB_* 값이 테스트에 섞이지 않도록 비운다.
    for key in list(os.environ):
        if key.startswith("INPUT_") or key in {"GITHUB_SHA", "GITHUB_OUTPUT", "GITHUB_ACTIONS"}:
            monkeypatch.delenv(key, raising=False)
