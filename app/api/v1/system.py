from fastapi import APIRouter, Depends, Query

from app.analytics import db as analytics_db
from app.core.security import require_admin

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    return {"status": "healthy"}


@router.get("/analytics/ai-runs")
def ai_runs(
    limit: int = Query(default=20, ge=1, le=200),
    _: None = Depends(require_admin),
):
    return {
        "summary": analytics_db.get_ai_run_summary(),
        "latest": analytics_db.get_latest_runs(limit=limit),
    }
