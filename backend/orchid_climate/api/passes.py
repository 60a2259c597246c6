"""POST /api/passes/{name} - Run one pipeline pass (scheduler hook)."""

from fastapi import APIRouter, HTTPException

from ..schemas.climate import PassRunResponse
from ..services.passes import PASSES, UnknownPassError, get_runner

router = APIRouter(prefix="/passes", tags=["passes"])


@router.get("")
async def list_passes():
    runner = get_runner()
    return {"passes": [{"name": n, "running": runner.is_running(n)} for n in PASSES]}


@router.post("/{name}", response_model=PassRunResponse)
async def run_pass(name: str):
    try:
        summary = await get_runner().run(name)
    except UnknownPassError:
        raise HTTPException(status_code=404, detail=f"Unknown pass: {name}")

    return PassRunResponse(
        pass_name=summary["pass"],
        status=summary["status"],
        started_at=summary.get("started_at"),
        duration_sec=summary.get("duration_sec"),
        result=summary.get("result"),
        error=summary.get("error"),
    )
