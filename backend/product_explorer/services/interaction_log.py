"""
Best-effort writer for the AI interaction log.
A logging failure is reported and swallowed; it never fails the AI response.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable

from product_explorer.db.session import get_db
from product_explorer.repositories.ai_log_repo import create_ai_log

logger = logging.getLogger(__name__)

# Model marker for templated (non-AI) comparison text
FALLBACK_MODEL_MARKER = "fallback:template"

InteractionRecorder = Callable[[str, str, str], None]


def as_log_text(response: Any) -> str:
    if isinstance(response, str):
        return response
    return json.dumps(response, ensure_ascii=False, default=str)


def record_interaction(prompt: str, response: str, model_used: str) -> None:
    try:
        with get_db() as db:
            create_ai_log(db, prompt=prompt, response=response, model_used=model_used)
    except Exception:
        logger.warning("Failed to write AI interaction log (model=%s)", model_used, exc_info=True)
