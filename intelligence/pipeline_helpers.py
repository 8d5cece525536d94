"""Shared helpers for stage prompts and LLM output parsing."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_PLACEHOLDER_HOSTS = ("placehold.co", "placeholder.com", "via.placeholder.com")


def extract_json(text: str) -> Dict[str, Any]:
    """Parse the first JSON object in an LLM reply; empty dict when none."""
    raw = (text or "").strip()
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
        return parsed if isinstance(parsed, dict) else {}
    except json.JSONDecodeError:
        pass
    match = re.search(r"\{[\s\S]*\}", raw)
    if not match:
        return {}
    try:
        parsed = json.loads(match.group())
        return parsed if isinstance(parsed, dict) else {}
    except json.JSONDecodeError:
        return {}


def parse_model(text: str, model: Type[ModelT]) -> Optional[ModelT]:
    """Validate an LLM JSON reply against a schema; None when malformed."""
    payload = extract_json(text)
    if not payload:
        return None
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        logger.debug(f"{model.__name__} validation failed: {exc}")
        return None


def truncate_text(value: str, max_chars: int, suffix: str = "...") -> str:
    text = value or ""
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - len(suffix))].rstrip() + suffix


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text or "") if s.strip()]


def clean_list(items: Any, max_items: Optional[int] = None) -> List[str]:
    if not isinstance(items, list):
        return []
    cleaned = [str(item).strip() for item in items if str(item or "").strip()]
    return cleaned[:max_items] if max_items else cleaned


def is_valid_http_url(value: Any) -> bool:
    text = str(value or "").strip()
    if not text:
        return False
    parsed = urlparse(text)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def looks_placeholder_url(value: Any) -> bool:
    text = str(value or "").strip().lower()
    if text.startswith("data:"):
        return True
    host = urlparse(text).netloc
    return any(host == h or host.endswith("." + h) for h in _PLACEHOLDER_HOSTS)
