"""Need Routes — availability for one need and progress for a drive."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import NeedRef, NeedRefType
from app.infrastructure.database import get_db
from app.services.handle_needs import NeedHandlers

router = APIRouter(prefix="/api/v1", tags=["needs"])


@router.get("/needs/{ref_type}/{ref_id}")
async def need_availability(
    ref_type: NeedRefType, ref_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await NeedHandlers(db).need_availability(NeedRef(ref_type, ref_id))


@router.get("/drives/{drive_id}/aggregate")
async def drive_aggregate(drive_id: UUID, db: AsyncSession = Depends(get_db)):
    return await NeedHandlers(db).drive_aggregate(drive_id)
