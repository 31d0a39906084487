# trainer/routers/system.py
from fastapi import APIRouter, Depends

from ..deps import get_conversation_cache
from ..services.conversation_cache import ConversationCache

router = APIRouter(prefix="/api/cache", tags=["system"])


@router.get("/stats")
def cache_stats(cache: ConversationCache = Depends(get_conversation_cache)):
    return cache.get_cache_stats()


@router.delete("")
def clear_cache(cache: ConversationCache = Depends(get_conversation_cache)):
    cache.clear_cache()
    return {"success": True}
