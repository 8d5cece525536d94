"""Persistent writing-style patterns learned from sample texts."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from utils.exceptions import StorageError


logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class StyleStore:
    """JSON-file store for style samples and the patterns learned from them."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._lock = Lock()
        self._patterns: Dict[str, Any] = {}
        self._samples: List[Dict[str, Any]] = []
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Ignoring unreadable style file {self.path}: {exc}")
            return
        self._patterns = dict(data.get("patterns") or {})
        self._samples = list(data.get("samples") or [])
        logger.info(f"Loaded {len(self._patterns)} style pattern groups from {self.path}")

    def _save(self) -> None:
        data = {
            "patterns": self._patterns,
            "samples": self._samples,
            "updated_at": _utcnow(),
            "sample_count": len(self._samples),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to save style patterns: {exc}", {"path": str(self.path)}) from exc

    def add_sample(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        """Queue a sample text for the next learning pass; returns the sample count."""
        with self._lock:
            self._samples.append({"text": text, "metadata": metadata or {}, "added_at": _utcnow()})
            return len(self._samples)

    @property
    def samples(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(sample) for sample in self._samples]

    @property
    def patterns(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._patterns)

    def has_patterns(self) -> bool:
        with self._lock:
            return bool(self._patterns)

    def save_patterns(self, patterns: Dict[str, Any]) -> None:
        with self._lock:
            self._patterns = dict(patterns)
            self._save()

    def reset(self) -> None:
        with self._lock:
            self._patterns = {}
            self._samples = []
            if self.path.exists():
                self.path.unlink()
        logger.info("Style patterns reset")
