"""
Render worker trigger route
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..schemas import WorkerRunResponse
from ..services.render_worker import process_render_queue
from ..logger import logger

router = APIRouter(tags=["Worker"])

@router.api_route("/worker", methods=["GET", "POST"], response_model=WorkerRunResponse)
async def run_worker(db: AsyncSession = Depends(get_db)):
    """Process one batch of due render jobs and report how many became READY."""
    logger.info("Render worker triggered over HTTP")
    processed = await process_render_queue(db)
    return WorkerRunResponse(ok=True, processed=processed)
