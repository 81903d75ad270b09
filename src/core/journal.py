"""Journal entries — validation plus a thin persistence service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.core.errors import ValidationError
from src.data.models import JournalEntry, new_id

if TYPE_CHECKING:
    from src.data.db import JournalDB

logger = logging.getLogger(__name__)


def create_journal_entry(
    title: str,
    content: str,
    now: int,
    mood: str | None = None,
    tags: list[str] | None = None,
) -> JournalEntry:
    if not title or not title.strip():
        raise ValidationError("Journal title is required")
    if not content or not content.strip():
        raise ValidationError("Journal content is required")

    clean_tags: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in clean_tags:
            clean_tags.append(tag)

    return JournalEntry(
        id=new_id(),
        date=now,
        title=title.strip(),
        content=content.strip(),
        mood=mood,
        tags=clean_tags,
    )


class JournalService:
    def __init__(self, store: JournalDB) -> None:
        self._store = store

    def add(self, now: int, **fields) -> JournalEntry:
        entry = create_journal_entry(now=now, **fields)
        self._store.save_entry(entry)
        logger.info("Journal entry added: %s '%s'", entry.id, entry.title)
        return entry

    def list_all(self, limit: int | None = None) -> list[JournalEntry]:
        return self._store.list_entries(limit=limit)

    def delete(self, entry_id: str) -> bool:
        return self._store.delete_entry(entry_id)
