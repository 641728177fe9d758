"""Draft storage for resumable booking and bid forms.

Drafts are stored per owner: {base_dir}/{owner_id}/{kind}_{key}.json.
Nothing in the bidding or progression engines reads them.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from app.config import get_settings
from app.errors import ValidationFailed
from app.models.base import utcnow
from app.schemas.draft import BookingDraft, BidDraft

logger = logging.getLogger(__name__)

_settings = get_settings()
_SAFE_KEY = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")

D = TypeVar("D", bound=BaseModel)


class DraftStore:
    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir or _settings.drafts.base_dir)

    def _path(self, owner_id: str, kind: str, key: str) -> Path:
        for part in (owner_id, key):
            if not _SAFE_KEY.match(part or ""):
                raise ValidationFailed("Draft keys may only contain letters, digits, '-' and '_'", key=part)
        return self.base_dir / owner_id / f"{kind}_{key}.json"

    def _save_sync(self, path: Path, draft: BaseModel) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(draft.model_dump_json())
        tmp.replace(path)

    def _load_sync(self, path: Path, model: type[D]) -> D | None:
        if not path.exists():
            return None
        try:
            return model.model_validate_json(path.read_text())
        except ValidationError:
            # Corrupt drafts are removed.
            logger.warning(f"Discarding corrupt draft {path}")
            path.unlink(missing_ok=True)
            return None

    async def _save(self, owner_id: str, kind: str, key: str, draft: D) -> D:
        draft = draft.model_copy(update={"saved_at": utcnow()})
        await asyncio.to_thread(self._save_sync, self._path(owner_id, kind, key), draft)
        return draft

    async def _clear(self, owner_id: str, kind: str, key: str) -> bool:
        path = self._path(owner_id, kind, key)
        existed = path.exists()
        await asyncio.to_thread(path.unlink, missing_ok=True)
        return existed

    # ── Booking drafts (keyed by service type) ────────────

    async def save_booking_draft(self, owner_id: str, draft: BookingDraft) -> BookingDraft:
        return await self._save(owner_id, "booking", draft.service_type, draft)

    async def load_booking_draft(self, owner_id: str, service_type: str) -> BookingDraft | None:
        path = self._path(owner_id, "booking", service_type)
        return await asyncio.to_thread(self._load_sync, path, BookingDraft)

    async def clear_booking_draft(self, owner_id: str, service_type: str) -> bool:
        return await self._clear(owner_id, "booking", service_type)

    # ── Bid drafts (keyed by booking id) ──────────────────

    async def save_bid_draft(self, owner_id: str, draft: BidDraft) -> BidDraft:
        return await self._save(owner_id, "bid", draft.booking_id, draft)

    async def load_bid_draft(self, owner_id: str, booking_id: str) -> BidDraft | None:
        path = self._path(owner_id, "bid", booking_id)
        return await asyncio.to_thread(self._load_sync, path, BidDraft)

    async def clear_bid_draft(self, owner_id: str, booking_id: str) -> bool:
        return await self._clear(owner_id, "bid", booking_id)


draft_store = DraftStore()
