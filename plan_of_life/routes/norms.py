from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from plan_of_life.auth import require_user_id
from plan_of_life import repositories
from plan_of_life.schemas import NormCreate, NormOrderPayload, NormPatch, NormResponse

router = APIRouter()


@router.get("/v1/norms")
async def list_norms(active_only: bool = Query(False), user_id: str = Depends(require_user_id)):
    return {"items": await repositories.ensure_seeded(user_id, active_only=active_only)}


@router.post("/v1/norms", response_model=NormResponse, status_code=201)
async def create_norm(payload: NormCreate, user_id: str = Depends(require_user_id)):
    return await repositories.add_custom_norm(user_id, payload.name)


@router.patch("/v1/norms/{norm_id}")
async def update_norm(norm_id: str, payload: NormPatch, user_id: str = Depends(require_user_id)):
    await repositories.set_active(user_id, norm_id, payload.is_active)
    return {"ok": True}


@router.delete("/v1/norms/{norm_id}")
async def delete_norm(norm_id: str, user_id: str = Depends(require_user_id)):
    await repositories.delete_norm(user_id, norm_id)
    return {"ok": True}


@router.put("/v1/norms/order")
async def reorder_norms(payload: NormOrderPayload, user_id: str = Depends(require_user_id)):
    await repositories.reorder(user_id, payload.ordered_ids)
    return {"items": await repositories.list_norms(user_id)}
