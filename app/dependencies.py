"""FastAPI dependency providers for the caller identity."""

from __future__ import annotations

from fastapi import Header

from app.errors import Unauthorized


async def get_actor_id(
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
) -> str:
    """Caller id, authenticated upstream and forwarded in X-Actor-Id."""
    actor = (x_actor_id or "").strip()
    if not actor:
        raise Unauthorized("Missing X-Actor-Id header")
    return actor
