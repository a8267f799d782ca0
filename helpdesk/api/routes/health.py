from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from helpdesk.metrics import metrics_registry

router = APIRouter(tags=["health"])


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> str:
    return metrics_registry.render_prometheus()
