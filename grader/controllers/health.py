import asyncio

from fastapi import APIRouter

from grader import state
from grader.dependencies import OptionalEngine

router = APIRouter()


@router.get("/health")
async def health(engine: OptionalEngine) -> dict[str, str | int]:
    engine_status = "disconnected"
    if engine is not None:
        healthy = await asyncio.to_thread(engine.ping)
        engine_status = "healthy" if healthy else "unhealthy"

    return {
        "status": "ok",
        "engine": engine_status,
        "tasks": len(state.catalog) if state.catalog is not None else 0,
    }
