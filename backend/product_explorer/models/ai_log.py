"""AI interaction log: append-only prompt/response/model records."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from product_explorer.db.session import Base
from product_explorer.models.base import UUIDPrimaryKeyMixin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AiLog(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "ai_logs"

    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    # Model text, or a JSON error payload for failed attempts
    response: Mapped[str] = mapped_column(Text, nullable=False)
    model_used: Mapped[str] = mapped_column(String(255), nullable=False)
    # Client-side default: sub-second ordering for "newest first"
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
