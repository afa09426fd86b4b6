"""
cloudrun_deploy
---------------

CI 파이프라인 단계용 Cloud Run 배포 도구.
image / env vars / secrets / traffic / labels / metadata 입력을
gcloud run 명령으로 변환해 실행하고, JSON 출력에서 서비스 URL 을 뽑아낸다.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "gcp_cloud_run",
    "output_parser",
    "orchestrator",
]
