"""
Render worker: moves videos from QUEUED (or due INIT) through RENDERING to READY/ERROR.

One invocation handles a small batch sequentially on a single session. Each
job is claimed with a conditional update, so two concurrent invocations that
read the same candidates cannot both start a render for it.
"""
from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import IntegrationNotFoundError
from ..logger import logger
from ..models import Integration, Video, VideoStatus
from ..providers.heygen import HeyGenClient, RenderRequest, normalize_base_url

videos = Video.__table__
integrations = Integration.__table__


@dataclass(frozen=True)
class IntegrationConfig:
    api_key: str
    base_url: str
    avatar_id: Optional[str]
    voice_id: str
    api_version: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "IntegrationConfig":
        return cls(
            api_key=row["api_key"],
            base_url=normalize_base_url(row["base_url"]),
            avatar_id=row["presenter_id"],
            voice_id=row["voice_id"] or settings.HEYGEN_DEFAULT_VOICE_ID,
            api_version=row["api_version"],
        )


async def select_candidates(
    db: AsyncSession,
    service: str,
    batch_size: int,
    now: datetime,
) -> List[Mapping[str, Any]]:
    """QUEUED first, then due INIT jobs; each group by scheduled_at with NULLs first."""
    due_init = and_(
        videos.c.status == VideoStatus.INIT,
        or_(videos.c.scheduled_at.is_(None), videos.c.scheduled_at <= now),
    )
    stmt = (
        select(videos)
        .where(or_(videos.c.status == VideoStatus.QUEUED, due_init))
        .where(or_(videos.c.render_service == service, videos.c.render_service.is_(None)))
        .order_by(
            case((videos.c.status == VideoStatus.QUEUED, 0), else_=1),
            videos.c.scheduled_at.asc().nulls_first(),
            videos.c.id,
        )
        .limit(batch_size)
    )
    result = await db.execute(stmt)
    return list(result.mappings().all())


async def get_integration(db: AsyncSession, service: str) -> IntegrationConfig:
    result = await db.execute(
        select(integrations)
        .where(integrations.c.service == service)
        .order_by(integrations.c.created_at.desc(), integrations.c.id.desc())
        .limit(1)
    )
    row = result.mappings().first()
    if row is None:
        raise IntegrationNotFoundError(service)
    return IntegrationConfig.from_row(row)


async def claim_job(db: AsyncSession, job_id: int, observed_status: str) -> bool:
    """Move a job to RENDERING only if nobody changed its status since it was read."""
    result = await db.execute(
        update(videos)
        .where(videos.c.id == job_id, videos.c.status == observed_status)
        .values(status=VideoStatus.RENDERING)
    )
    await db.commit()
    return result.rowcount == 1


async def record_render_id(db: AsyncSession, job_id: int, render_id: str) -> None:
    await db.execute(update(videos).where(videos.c.id == job_id).values(render_id=render_id))
    await db.commit()


async def mark_ready(db: AsyncSession, job_id: int, file_url: str, render_id: str) -> None:
    await db.execute(
        update(videos)
        .where(videos.c.id == job_id)
        .values(status=VideoStatus.READY, file_url=file_url, render_id=render_id, link="")
    )
    await db.commit()


async def mark_error(db: AsyncSession, job_id: int, message: str) -> None:
    await db.execute(
        update(videos)
        .where(videos.c.id == job_id)
        .values(status=VideoStatus.ERROR, link=message)
    )
    await db.commit()


def build_render_request(job: Mapping[str, Any], integration: IntegrationConfig) -> RenderRequest:
    return RenderRequest(
        text=job["script"] or job["hook"] or "",
        avatar_id=integration.avatar_id,
        voice_id=integration.voice_id,
        captions_on=True if job["captions_on"] is None else bool(job["captions_on"]),
        hook_text=job["hook"] or "",
        hook_on=True if job["hook_overlay_on"] is None else bool(job["hook_overlay_on"]),
        hook_pos=job["hook_pos"] or "top",
    )


def build_client(integration: IntegrationConfig) -> HeyGenClient:
    return HeyGenClient(
        api_key=integration.api_key,
        base_url=integration.base_url,
        api_version=integration.api_version,
    )


async def render_job(
    db: AsyncSession,
    client: HeyGenClient,
    integration: IntegrationConfig,
    job: Mapping[str, Any],
) -> bool:
    """Render one claimed job. Returns True when it ended READY."""
    job_id = job["id"]

    if not await claim_job(db, job_id, job["status"]):
        logger.warning(f"Video {job_id} was claimed by another worker, skipping", extra={"video_id": job_id})
        return False
    logger.info(f"Video {job_id} status updated to 'RENDERING'", extra={"video_id": job_id})

    try:
        req = build_render_request(job, integration)
        render_id = await asyncio.to_thread(client.create_video, req)
        await record_render_id(db, job_id, render_id)

        file_url = await asyncio.to_thread(client.wait_for_video, render_id)
        await mark_ready(db, job_id, file_url, render_id)
    except Exception as e:
        message = str(e) or type(e).__name__
        logger.error(
            f"Render failed for video {job_id}: {message}",
            extra={
                "video_id": job_id,
                "error": message,
                "traceback": traceback.format_exc(),
            }
        )
        await db.rollback()
        await mark_error(db, job_id, message)
        return False

    logger.info(f"Video {job_id} is READY", extra={"video_id": job_id, "file_url": file_url})
    return True


async def process_render_queue(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Run one worker invocation and return how many videos reached READY.

    A missing integration aborts the invocation before any job is claimed;
    failures of individual renders are stored on the job and never abort the batch.
    """
    service = settings.RENDER_SERVICE
    candidates = await select_candidates(db, service, settings.WORKER_BATCH_SIZE, now or datetime.utcnow())
    if not candidates:
        logger.info("No render jobs due")
        return 0

    integration = await get_integration(db, service)
    client = build_client(integration)

    logger.info(
        f"Processing {len(candidates)} render jobs",
        extra={"video_ids": [job["id"] for job in candidates], "service": service},
    )

    processed = 0
    for job in candidates:
        if await render_job(db, client, integration, job):
            processed += 1

    logger.info(f"Render worker finished: {processed}/{len(candidates)} ready", extra={"processed": processed})
    return processed
