"""Reference lists used by the assignment form: industries, hook tags, character tags and posting profiles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.envelope import success_envelope
from app.api.routes.auth import get_current_user
from app.core.database import get_db
from app.domain.errors import NotFound
from app.models import CharacterTag, HookTag, Industry, Profile, ProfileListItem

router = APIRouter(prefix="/config", tags=["Content Config"])

CONFIG_MODELS = {
    "industries": Industry,
    "hook-tags": HookTag,
    "character-tags": CharacterTag,
    "profiles": ProfileListItem,
}


def _serialize_item(item) -> dict:
    data = {"id": item.id, "name": item.name, "is_active": bool(item.is_active)}
    if isinstance(item, Industry):
        data["short_code"] = item.short_code
    return data


@router.get("/{kind}")
async def list_config(
    kind: str,
    include_inactive: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    _: Profile = Depends(get_current_user),
):
    model = CONFIG_MODELS.get(kind)
    if model is None:
        raise NotFound("Unknown configuration list", details={"kind": kind})
    stmt = select(model)
    if not include_inactive:
        stmt = stmt.where(model.is_active.is_(True))
    rows = await db.execute(stmt.order_by(model.name))
    items = [_serialize_item(item) for item in rows.scalars().all()]
    return success_envelope(items, meta={"count": len(items)})
