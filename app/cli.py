"""CLI for Tackle Market: database setup, bid sweep and contractor profiles."""

from __future__ import annotations

import argparse
import asyncio
import sys


async def cmd_init_db(args):
    """Create all marketplace tables."""
    from app.db.engine import init_db

    await init_db()
    print("Database tables created")


async def cmd_sweep_bids(args):
    """Expire every pending bid past its deadline."""
    from app.db.engine import async_session_factory, init_db
    from app.services.bidding import expire_bids

    await init_db()
    async with async_session_factory() as db:
        expired = await expire_bids(db)
    print(f"Expired {len(expired)} bid(s)")
    for bid_id in expired:
        print(f"  {bid_id}")


async def cmd_add_contractor(args):
    """Register a contractor profile."""
    from app.db.engine import async_session_factory, init_db
    from app.errors import MarketplaceError
    from app.services.contractors import register_contractor

    await init_db()
    async with async_session_factory() as db:
        try:
            contractor = await register_contractor(
                db,
                args.id,
                args.service_type,
                full_name=args.name,
                contractor_type=args.type,
                is_available=not args.unavailable,
            )
        except MarketplaceError as e:
            print(f"{e.code}: {e.message}")
            sys.exit(1)

    print(f"Contractor created: {contractor.full_name or contractor.id} (id={contractor.id})")
    print(f"Service: {contractor.service_type} ({contractor.contractor_type})")


def main():
    parser = argparse.ArgumentParser(description="Tackle Market CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("sweep-bids", help="Expire overdue pending bids")

    ac = subparsers.add_parser("add-contractor", help="Register a contractor profile")
    ac.add_argument("--id", required=True, help="Contractor account id")
    ac.add_argument("--service-type", required=True, help="Service type, e.g. aircon")
    ac.add_argument("--name", default="", help="Display name")
    ac.add_argument("--type", default="saver", choices=["saver", "tacklers_choice"], help="Contractor type")
    ac.add_argument("--unavailable", action="store_true", help="Register as not taking new jobs")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "init-db":
        asyncio.run(cmd_init_db(args))
    elif args.command == "sweep-bids":
        asyncio.run(cmd_sweep_bids(args))
    elif args.command == "add-contractor":
        asyncio.run(cmd_add_contractor(args))


if __name__ == "__main__":
    main()
