"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import canvas, reports, export

router = APIRouter()

router.include_router(canvas.router, prefix="/canvas", tags=["Canvas"])
# Export before reports so /reports/{id}/export/... is matched explicitly
router.include_router(export.router, prefix="/reports", tags=["Export"])
router.include_router(reports.router, prefix="/reports", tags=["Reports"])
