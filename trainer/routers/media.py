# trainer/routers/media.py
from fastapi import APIRouter, HTTPException, Query

from ..config import settings
from ..services import media_storage

router = APIRouter(prefix="/api/media", tags=["media"])


@router.get("/signed-url")
def signed_url(objectPath: str = Query(..., min_length=1)):
    if not media_storage.is_available():
        raise HTTPException(503, "GCS storage is not configured")
    try:
        url = media_storage.get_signed_url(objectPath)
    except FileNotFoundError as e:
        raise HTTPException(404, str(e))
    return {"url": url, "expiresIn": settings.gcs_url_ttl}
