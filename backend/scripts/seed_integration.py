from __future__ import annotations

import argparse
import asyncio
from typing import Optional

from app.db import AsyncSessionLocal, engine
from app.logger import logger
from app.models import Base
from app.models import Integration as IntegrationModel


async def seed_integration(
    *,
    service: str,
    api_key: str,
    base_url: Optional[str],
    presenter_id: Optional[str],
    voice_id: Optional[str],
    api_version: Optional[str],
) -> int:
    """Store a new credential row; the worker always uses the newest one per service."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        integration = IntegrationModel(
            service=service,
            api_key=api_key,
            base_url=base_url,
            presenter_id=presenter_id,
            voice_id=voice_id,
            api_version=api_version,
        )
        db.add(integration)
        await db.commit()
        await db.refresh(integration)

    logger.info(
        "Integration stored",
        extra={"service": service, "integration_id": integration.id, "api_version": api_version},
    )
    return integration.id


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Insert render provider credentials into the integrations table.",
    )
    parser.add_argument("--service", default="heygen")
    parser.add_argument("--api-key", required=True)
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--presenter-id", default=None, help="Default avatar id")
    parser.add_argument("--voice-id", default=None)
    parser.add_argument("--api-version", choices=["v1", "v2"], default=None)
    return parser


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    asyncio.run(
        seed_integration(
            service=args.service,
            api_key=args.api_key,
            base_url=args.base_url,
            presenter_id=args.presenter_id,
            voice_id=args.voice_id,
            api_version=args.api_version,
        )
    )


if __name__ == "__main__":
    main()
