"""Liveness endpoint."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    orchestrator = getattr(request.app.state, "orchestrator", None)
    providers = [p.value for p in orchestrator.providers] if orchestrator else []
    return {"status": "ok", "providers": providers}
