from datetime import date

import pytest

from app.errors import ValidationFailed
from app.schemas.draft import BidDraft, BookingDraft
from app.services.drafts import DraftStore


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path / "drafts")


async def test_booking_draft_save_load_clear(store):
    draft = BookingDraft(
        service_type="aircon", step=2, description="Noisy unit",
        scheduled_date=date(2030, 1, 5), scheduled_time="10:00",
    )

    saved = await store.save_booking_draft("cust-1", draft)
    loaded = await store.load_booking_draft("cust-1", "aircon")

    assert saved.saved_at is not None
    assert loaded == saved
    assert await store.clear_booking_draft("cust-1", "aircon") is True
    assert await store.load_booking_draft("cust-1", "aircon") is None
    assert await store.clear_booking_draft("cust-1", "aircon") is False


async def test_drafts_are_scoped_per_owner(store):
    await store.save_bid_draft("con-1", BidDraft(booking_id="bk1", amount=120))

    assert await store.load_bid_draft("con-2", "bk1") is None
    assert (await store.load_bid_draft("con-1", "bk1")).amount == 120


async def test_corrupt_draft_is_discarded(store):
    await store.save_bid_draft("con-1", BidDraft(booking_id="bk1", amount=120))
    path = store.base_dir / "con-1" / "bid_bk1.json"
    path.write_text("{not json")

    assert await store.load_bid_draft("con-1", "bk1") is None
    assert not path.exists()


async def test_path_traversal_rejected(store):
    with pytest.raises(ValidationFailed):
        await store.load_booking_draft("../etc", "aircon")
