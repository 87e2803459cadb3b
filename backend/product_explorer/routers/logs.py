"""Thin API layer: AI interaction log inspection and bulk clear."""
from __future__ import annotations

import logging

from fastapi import APIRouter

from product_explorer.db.session import get_db
from product_explorer.repositories import clear_ai_logs, list_recent_ai_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("")
def recent_logs():
    """Last 50 interactions, newest first."""
    with get_db() as db:
        return {"logs": list_recent_ai_logs(db, limit=50)}


@router.delete("")
def clear_logs():
    with get_db() as db:
        deleted = clear_ai_logs(db)
    logger.info("Cleared %d AI log entries", deleted)
    return {"deleted": deleted}
