"""Contractor profile registration and availability."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import crud
from app.errors import ValidationFailed, NotFound, ContractorExists
from app.models import Contractor
from app.models.enums import BookingMode

logger = logging.getLogger(__name__)

_settings = get_settings()


async def register_contractor(
    db: AsyncSession, contractor_id: str, service_type: str, full_name: str = "",
    contractor_type: str = BookingMode.SAVER.value, is_available: bool = True,
) -> Contractor:
    if service_type not in _settings.marketplace.service_types:
        raise ValidationFailed(f"Unknown service type '{service_type}'", service_type=service_type)
    if contractor_type not in {m.value for m in BookingMode}:
        raise ValidationFailed(f"Unknown contractor type '{contractor_type}'", contractor_type=contractor_type)
    if await crud.get_contractor(db, contractor_id) is not None:
        raise ContractorExists(contractor_id=contractor_id)

    contractor = await crud.create_contractor(
        db, contractor_id, service_type, full_name=full_name,
        contractor_type=contractor_type, is_available=is_available,
    )
    logger.info(f"Contractor {contractor_id} registered for {service_type} ({contractor_type})")
    return contractor


async def update_profile(
    db: AsyncSession, contractor_id: str, full_name: str | None = None,
    is_available: bool | None = None,
) -> Contractor:
    contractor = await crud.get_contractor(db, contractor_id)
    if contractor is None:
        raise NotFound("Contractor profile not found", contractor_id=contractor_id)
    contractor = await crud.update_contractor(
        db, contractor, full_name=full_name, is_available=is_available,
    )
    if is_available is not None:
        logger.info(f"Contractor {contractor_id} availability set to {is_available}")
    return contractor
