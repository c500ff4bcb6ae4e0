"""Response archive and export snapshot."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from src.models import ArchiveEntry
from src.services.encryption import decrypt, encrypt

log = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResponseArchive:
    """Answers keyed by question id. Last write per id wins."""

    def __init__(self) -> None:
        self._entries: dict[int, ArchiveEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._entries

    def get(self, question_id: int) -> Optional[ArchiveEntry]:
        return self._entries.get(question_id)

    def record(
        self,
        question_id: int,
        question: str,
        response: str,
        timestamp: Optional[str] = None,
    ) -> ArchiveEntry:
        entry = ArchiveEntry(
            question=question,
            response=response,
            timestamp=timestamp or _now_iso(),
            insights=[],
        )
        self._entries[question_id] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def export(self, quiz_name: str, completion_date: Optional[str] = None) -> dict[str, Any]:
        """Snapshot document; responses ordered by ascending question id."""
        return {
            "quizName": quiz_name,
            "completionDate": completion_date or _now_iso(),
            "responses": [
                self._entries[question_id].model_dump()
                for question_id in sorted(self._entries)
            ],
        }

    def seal(self, passphrase: Optional[str] = None) -> Optional[str]:
        """Encrypted copy of the archive contents."""
        data = {str(qid): entry.model_dump() for qid, entry in self._entries.items()}
        return encrypt(data, passphrase)

    @classmethod
    def unseal(cls, token: str, passphrase: Optional[str] = None) -> Optional["ResponseArchive"]:
        """Rebuild an archive from `seal` output; None if the token is unreadable."""
        data = decrypt(token, passphrase)
        if not isinstance(data, dict):
            return None
        archive = cls()
        try:
            for qid, entry in data.items():
                archive._entries[int(qid)] = ArchiveEntry.model_validate(entry)
        except (TypeError, ValueError, ValidationError) as e:
            log.error(f"Sealed archive has unexpected contents: {e}")
            return None
        return archive


def export_filename(quiz_name: str, now: Optional[datetime] = None) -> str:
    """e.g. personal-growth-quiz-2026-01-01T10:00:00+00:00.json"""
    slug = re.sub(r"[^a-z0-9]+", "-", quiz_name.lower()).strip("-") or "quiz"
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return f"{slug}-{stamp}.json"


def write_export(document: dict[str, Any], directory: str | Path, filename: Optional[str] = None) -> Path:
    """Write an export document to disk and return its path."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / (filename or export_filename(document.get("quizName", "quiz")))
    path.write_text(json.dumps(document, indent=2))
    return path
