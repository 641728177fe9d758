from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.responses import ok
from app.db import crud
from app.db.engine import get_db
from app.dependencies import get_actor_id
from app.errors import NotFound
from app.schemas.contractor import ContractorCreate, ContractorUpdate, ContractorRead
from app.schemas.envelope import Envelope
from app.services import contractors

router = APIRouter(prefix="/api/contractors", tags=["contractors"])


@router.post("", response_model=Envelope[ContractorRead], status_code=201)
async def register_contractor(
    body: ContractorCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    contractor = await contractors.register_contractor(
        db, actor_id, body.service_type, full_name=body.full_name,
        contractor_type=body.contractor_type, is_available=body.is_available,
    )
    return ok(ContractorRead, contractor)


@router.get("/me", response_model=Envelope[ContractorRead])
async def get_my_profile(
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    contractor = await crud.get_contractor(db, actor_id)
    if contractor is None:
        raise NotFound("Contractor profile not found", contractor_id=actor_id)
    return ok(ContractorRead, contractor)


@router.patch("/me", response_model=Envelope[ContractorRead])
async def update_my_profile(
    body: ContractorUpdate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    contractor = await contractors.update_profile(
        db, actor_id, full_name=body.full_name, is_available=body.is_available,
    )
    return ok(ContractorRead, contractor)


@router.get("/{contractor_id}", response_model=Envelope[ContractorRead])
async def get_contractor(
    contractor_id: str,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    contractor = await crud.get_contractor(db, contractor_id)
    if contractor is None:
        raise NotFound("Contractor profile not found", contractor_id=contractor_id)
    return ok(ContractorRead, contractor)
