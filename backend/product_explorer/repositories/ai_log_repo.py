"""AI interaction log repository: append, list recent, bulk clear."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from product_explorer.models import AiLog
from product_explorer.repositories.queries import SQL_CLEAR_AI_LOGS


def create_ai_log(db: Session, prompt: str, response: str, model_used: str) -> str:
    entry = AiLog(prompt=prompt, response=response, model_used=model_used)
    db.add(entry)
    db.flush()
    return entry.id


def list_recent_ai_logs(db: Session, limit: int = 50) -> list[dict[str, Any]]:
    rows = db.execute(
        select(AiLog).order_by(AiLog.created_at.desc(), AiLog.id.desc()).limit(limit)
    ).scalars().all()
    return [
        {
            "id": r.id,
            "prompt": r.prompt,
            "response": r.response,
            "model_used": r.model_used,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]


def clear_ai_logs(db: Session) -> int:
    """Delete every log entry; returns how many were removed."""
    result = db.execute(text(SQL_CLEAR_AI_LOGS))
    return int(result.rowcount or 0)
