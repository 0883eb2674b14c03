"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Union

# ===== Common Schemas =====

class HealthResponse(BaseModel):
    status: str
    service: str

# ===== Query Relay Schemas =====

class OrderSpec(BaseModel):
    column: Optional[str] = None
    dir: Optional[str] = None

class RelayRequest(BaseModel):
    # Everything is optional at the schema level so that missing fields
    # surface as relay client errors with a specific message.
    action: Optional[str] = None
    table: Optional[str] = None
    values: Optional[Union[List[Dict[str, Any]], Dict[str, Any]]] = None
    where: Optional[Dict[str, Any]] = None
    order: Optional[OrderSpec] = None
    bulk: Optional[bool] = None

# ===== Render Worker Schemas =====

class WorkerRunResponse(BaseModel):
    ok: bool = True
    processed: int
