from datetime import datetime, timezone

from fastapi import APIRouter, Request

from expense_tracker.services.timestamps import to_storage

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness check")
async def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "environment": settings.environment,
        "timestamp": to_storage(datetime.now(timezone.utc)),
    }


@router.get("/ping", summary="Connectivity check")
async def ping():
    return {"message": "pong"}
