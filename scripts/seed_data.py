"""Seed the database with demo contractors and an open aircon booking."""

import asyncio
from datetime import timedelta

from app.db.engine import async_session_factory, init_db
from app.db import crud
from app.models.base import utcnow
from app.schemas.booking import BookingCreate
from app.services.bidding import submit_bid
from app.services.bookings import create_booking
from app.services.contractors import register_contractor

DEMO_CUSTOMER = "demo-customer"
DEMO_CONTRACTORS = [
    ("demo-contractor-1", "Cool Breeze Aircon", "aircon", "saver"),
    ("demo-contractor-2", "Arctic Services", "aircon", "saver"),
    ("demo-contractor-3", "PipeWorks", "plumbing", "tacklers_choice"),
]


async def seed():
    await init_db()

    async with async_session_factory() as db:
        if await crud.get_contractor(db, DEMO_CONTRACTORS[0][0]):
            print("Demo contractors already exist, skipping seed.")
            return

        for contractor_id, name, service, kind in DEMO_CONTRACTORS:
            c = await register_contractor(db, contractor_id, service, full_name=name, contractor_type=kind)
            print(f"Created contractor: {c.full_name} (id: {c.id}, {c.service_type})")

        booking = await create_booking(db, DEMO_CUSTOMER, BookingCreate(
            service_type="aircon",
            description="Two wall units not cooling, yearly servicing due",
            address={"line1": "12 Orchard Road", "postal_code": "238823"},
            scheduled_date=(utcnow() + timedelta(days=2)).date(),
            scheduled_time="10:00",
            estimated_price=120.0,
            price_range_min=90.0,
            price_range_max=150.0,
        ))
        print(f"Created booking: {booking.id} ({booking.status_label})")

        for contractor_id, amount, eta in (("demo-contractor-1", 110.0, 60), ("demo-contractor-2", 95.0, 120)):
            bid = await submit_bid(db, booking.id, contractor_id, amount, eta, note="Includes gas top-up")
            print(f"  Bid {bid.id}: {contractor_id} offers {bid.amount:.2f}, ETA {bid.eta_minutes} min")

    print("\nSeed complete. Start the server with: uvicorn app.main:app --reload")
    print(f"Use header 'X-Actor-Id: {DEMO_CUSTOMER}' to act as the customer.")


if __name__ == "__main__":
    asyncio.run(seed())
