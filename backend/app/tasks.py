import asyncio
import traceback
from .workers import celery_app
from .db import AsyncSessionLocal, dispose_engine
from .services.render_worker import process_render_queue
from .logger import logger

@celery_app.task(bind=True, acks_late=True)
def process_render_queue_task(self):
    """
    Scheduled render worker invocation; same code path as GET/POST /worker.
    """
    async def _run():
        logger.info("Render worker triggered by schedule", extra={"celery_task_id": self.request.id})
        try:
            async with AsyncSessionLocal() as db:
                return await process_render_queue(db)
        except Exception as e:
            logger.error(
                f"Render worker invocation failed: {str(e)}",
                extra={
                    "error": str(e),
                    "traceback": traceback.format_exc(),
                }
            )
            raise
        finally:
            # asyncio.run gives every task a new loop; pooled connections cannot cross it
            await dispose_engine()

    processed = asyncio.run(_run())
    return {"ok": True, "processed": processed}
