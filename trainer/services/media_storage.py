# trainer/services/media_storage.py
"""
Google Cloud Storage 미디어 저장소.
버킷은 GCS_BUCKET_NAME, 자격증명은 ADC(GOOGLE_APPLICATION_CREDENTIALS 등)를 사용.
"""
import logging
from datetime import timedelta
from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from ..config import settings

log = logging.getLogger(__name__)

_client: Optional[storage.Client] = None


class StorageNotConfigured(RuntimeError):
    pass


def is_available() -> bool:
    return bool(settings.gcs_bucket_name)


def set_client(client: Optional[storage.Client]) -> None:
    """테스트 등에서 클라이언트 교체"""
    global _client
    _client = client


def _bucket():
    global _client
    if not is_available():
        raise StorageNotConfigured("GCS_BUCKET_NAME이 설정되지 않았습니다.")
    if _client is None:
        _client = storage.Client()
    return _client.bucket(settings.gcs_bucket_name)


def upload(data: bytes, object_path: str, content_type: str, public: bool = False) -> str:
    """업로드 후 public이면 공개 URL, 아니면 gs:// 경로 반환"""
    blob = _bucket().blob(object_path)
    blob.cache_control = "public, max-age=31536000" if public else "private, max-age=3600"
    blob.upload_from_string(data, content_type=content_type)
    log.info("[GCS] 업로드: %s (%d bytes)", object_path, len(data))
    if public:
        return f"https://storage.googleapis.com/{settings.gcs_bucket_name}/{object_path}"
    return f"gs://{settings.gcs_bucket_name}/{object_path}"


def get_signed_url(object_path: str, ttl_seconds: Optional[int] = None) -> str:
    """v4 서명 GET URL. 객체가 없으면 FileNotFoundError"""
    blob = _bucket().blob(object_path)
    if not blob.exists():
        raise FileNotFoundError(f"File not found: {object_path}")
    return blob.generate_signed_url(
        version="v4",
        method="GET",
        expiration=timedelta(seconds=ttl_seconds or settings.gcs_url_ttl),
    )


def exists(object_path: str) -> bool:
    return _bucket().blob(object_path).exists()


def delete(object_path: str) -> None:
    try:
        _bucket().blob(object_path).delete()
    except NotFound:
        log.info("[GCS] 삭제 대상 없음(무시): %s", object_path)
        return
    log.info("[GCS] 삭제: %s", object_path)
