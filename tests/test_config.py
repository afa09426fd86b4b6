import os

import pytest

from cloudrun_deploy.config import (
    ActionInputs,
    GcloudEnvironment,
    build_request,
    load_env_files,
    read_env_vars_file,
    read_metadata_document,
)
from cloudrun_deploy.errors import ConfigurationError
from cloudrun_deploy.models import (
    ByRevision,
    ByTag,
    GcloudComponent,
    Image,
    Job,
    MetadataFile,
    Service,
    SourceDirectory,
    UpdateStrategy,
)


def _set_inputs(monkeypatch: pytest.MonkeyPatch, **inputs: str) -> None:
    for key, value in inputs.items():
        monkeypatch.setenv(f"INPUT_{key.upper()}", value)


def test_from_env_reads_action_inputs(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_inputs(
        monkeypatch,
        service="my-test-service",
        image="gcr.io/cloudrun/hello",
        env_vars="FOO=BAR\nZIP=ZAP",
        region="us-central1,  us-east1",
    )
    monkeypatch.setenv("GITHUB_SHA", "abcdef123456")

    inputs = ActionInputs.from_env()

    assert inputs.service == "my-test-service"
    assert inputs.env_vars == "FOO=BAR\nZIP=ZAP"
    assert inputs.commit_sha == "abcdef123456"
    # 주어지지 않은 입력은 기본값 유지
    assert inputs.env_vars_update_strategy == "merge"


def test_from_env_defaults_region(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_inputs(monkeypatch, service="svc")
    assert ActionInputs.from_env().region == "us-central1"


def test_build_request_service_with_image() -> None:
    request = build_request(
        ActionInputs(
            service="my-test-service",
            image="gcr.io/cloudrun/hello",
            env_vars="FOO=BAR",
            secrets="S=s:latest",
            labels="foo=bar",
            region="us-central1,  us-east1",
            no_traffic="true",
            skip_default_labels="true",
            commit_sha="abc",
            gcloud_component="alpha",
            env_vars_update_strategy="overwrite",
        )
    )

    assert request.target == Service("my-test-service")
    assert request.image_source == Image("gcr.io/cloudrun/hello")
    assert request.env_vars == {"FOO": "BAR"}
    assert request.secrets == {"S": "s:latest"}
    assert request.labels == {"foo": "bar"}
    assert request.regions == ["us-central1", "us-east1"]
    assert request.no_traffic is True
    assert request.skip_default_labels is True
    assert request.commit_sha == "abc"
    assert request.gcloud_component is GcloudComponent.ALPHA
    assert request.env_vars_update_strategy is UpdateStrategy.OVERWRITE
    assert request.secrets_update_strategy is UpdateStrategy.MERGE


def test_build_request_job_with_source() -> None:
    request = build_request(ActionInputs(job="my-job", source="app"))
    assert request.target == Job("my-job")
    assert request.image_source == SourceDirectory("app")


def test_build_request_metadata_carries_explicit_name() -> None:
    request = build_request(ActionInputs(metadata="service.yaml", service="svc"))
    assert request.target == MetadataFile("service.yaml", expected_name="svc")


def test_build_request_traffic_specs() -> None:
    rev = build_request(ActionInputs(service="svc", revision_traffic="LATEST=100"))
    assert rev.traffic == ByRevision({"LATEST": "100"})

    tag = build_request(ActionInputs(service="svc", tag_traffic="canary=10,stable=90"))
    assert tag.traffic == ByTag({"canary": "10", "stable": "90"})


@pytest.mark.parametrize(
    "inputs, message",
    [
        (
            ActionInputs(service="svc", revision_traffic="TEST=100", tag_traffic="TEST=100"),
            "revision_traffic",
        ),
        (ActionInputs(service="svc", image="img", source="src"), "`source` or `image`"),
        (ActionInputs(service="svc", job="job", image="img"), "`service` or `job`"),
        (ActionInputs(service="svc", image="img", gcloud_component="wrong_value"), "wrong_value"),
        (ActionInputs(service="svc", image="img", env_vars_update_strategy="Merge"), "Merge"),
        (ActionInputs(service="svc", image="img", secrets_update_strategy="replace"), "replace"),
    ],
)
def test_build_request_rejects_conflicting_inputs(inputs: ActionInputs, message: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        build_request(inputs)
    assert message in str(excinfo.value)


def test_build_request_reads_env_vars_file_via_injected_reader() -> None:
    calls = []

    def fake_reader(path: str) -> dict:
        calls.append(path)
        return {"FROM_FILE": "1"}

    request = build_request(
        ActionInputs(service="svc", image="img", env_vars_file="vars.env"),
        read_env_file=fake_reader,
    )

    assert calls == ["vars.env"]
    assert request.env_vars_file == {"FROM_FILE": "1"}


def test_read_env_vars_file(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "vars.env"
    path.write_text("# comment\nFOO=bar\nZIP='zap zap'\n", encoding="utf-8")
    assert read_env_vars_file(str(path)) == {"FOO": "bar", "ZIP": "zap zap"}


def test_read_env_vars_file_missing_raises(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigurationError):
        read_env_vars_file(str(tmp_path / "nope.env"))


def test_read_metadata_document(fixture_path) -> None:  # noqa: ANN001
    document = read_metadata_document(fixture_path("job.yaml"))
    assert document["kind"] == "Job"
    assert document["metadata"]["name"] == "run-job-yaml"


def test_read_metadata_document_missing_raises(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigurationError):
        read_metadata_document(str(tmp_path / "missing.yaml"))


def test_read_metadata_document_directory_raises_configuration_error(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigurationError, match="읽을 수 없습니다"):
        read_metadata_document(str(tmp_path))


def test_read_env_vars_file_directory_raises(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(ConfigurationError):
        read_env_vars_file(str(tmp_path))


def test_load_env_files_later_file_overrides(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    (tmp_path / ".env").write_text("INPUT_SERVICE=first\nINPUT_IMAGE=img\n", encoding="utf-8")
    (tmp_path / ".env.deploy").write_text("INPUT_SERVICE=second\n", encoding="utf-8")
    monkeypatch.delenv("INPUT_SERVICE", raising=False)
    monkeypatch.delenv("INPUT_IMAGE", raising=False)

    load_env_files(str(tmp_path))
    try:
        assert os.environ["INPUT_SERVICE"] == "second"
        assert os.environ["INPUT_IMAGE"] == "img"
    finally:
        os.environ.pop("INPUT_SERVICE", None)
        os.environ.pop("INPUT_IMAGE", None)


def test_gcloud_environment_does_not_touch_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CLOUDSDK_CORE_DISABLE_PROMPTS", raising=False)

    env = GcloudEnvironment(metrics_environment_version="9.9.9").to_env({"PATH": "/bin"})

    assert env["PATH"] == "/bin"
    assert env["CLOUDSDK_CORE_DISABLE_PROMPTS"] == "1"
    assert env["CLOUDSDK_METRICS_ENVIRONMENT"] == "github-actions-deploy-cloudrun"
    assert env["CLOUDSDK_METRICS_ENVIRONMENT_VERSION"] == "9.9.9"
    assert env["GOOGLE_APIS_USER_AGENT"] == "github-actions-deploy-cloudrun/9.9.9"
    assert "CLOUDSDK_CORE_DISABLE_PROMPTS" not in os.environ
