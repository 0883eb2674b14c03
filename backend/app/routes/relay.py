"""
Query relay route - raw table access for ad hoc callers
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ..db import get_db
from ..schemas import RelayRequest
from ..services.query_relay import execute_relay

router = APIRouter(tags=["Relay"])

@router.post("/db")
async def relay_query(
    body: Optional[RelayRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Build and run one parameterized statement from an action descriptor."""
    kind, payload = await execute_relay(db, body or RelayRequest())
    if kind == "ok":
        return {"ok": True}
    return {"data": payload}
