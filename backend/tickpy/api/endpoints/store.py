"""
Store inspection endpoints

Exposes REST endpoints for:
- Health check and repair of a posted store
- Migration preview and status
- Running one simulated cycle over a posted store

Posted stores are never shared between requests; every call works on its own copy.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ...config import KernelSettings
from ...core.context import HostContext, RoomSnapshot, SimulatedCpu
from ...core.errors import HostContextError
from ...memory.migration_manager import MemoryMigrationManager
from ...memory.self_healer import MemorySelfHealer, SelfHealerConfig
from ...runtime import build_kernel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/store", tags=["store"])


class StorePayload(BaseModel):
    store: Dict[str, Any]
    auto_repair: bool = True


class MigrationPayload(BaseModel):
    store: Dict[str, Any]
    target_version: Optional[int] = Field(default=None, ge=0)


class CyclePayload(BaseModel):
    store: Dict[str, Any] = Field(default_factory=dict)
    tick: int = 0
    cpu_limit: float = Field(default=20.0, gt=0)
    cpu_used: float = Field(default=0.0, ge=0)
    bucket: float = Field(default=10000.0, ge=0)
    creeps: Optional[List[str]] = None
    rooms: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


def _migration_manager(target_version: Optional[int]) -> MemoryMigrationManager:
    if target_version is None:
        return MemoryMigrationManager()
    return MemoryMigrationManager(target_version)


@router.post("/health")
async def check_store_health(payload: StorePayload):
    store = copy.deepcopy(payload.store)
    healer = MemorySelfHealer(SelfHealerConfig(auto_repair=payload.auto_repair))
    result = healer.check_and_repair(store)
    return {"result": result.to_dict(), "store": store}


@router.post("/migrations/preview")
async def preview_migration(payload: MigrationPayload):
    manager = _migration_manager(payload.target_version)
    return manager.preview_migration(payload.store).to_dict()


@router.post("/migrations/status")
async def migration_status(payload: MigrationPayload):
    manager = _migration_manager(payload.target_version)
    return manager.get_status(payload.store)


@router.post("/cycle")
async def run_cycle(payload: CyclePayload):
    store = copy.deepcopy(payload.store)
    rooms = {}
    for name, data in payload.rooms.items():
        try:
            rooms[name] = RoomSnapshot.from_dict({"name": name, **data})
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid room {name}: {e}")

    host = HostContext(
        time=payload.tick,
        cpu=SimulatedCpu(limit=payload.cpu_limit, bucket=payload.bucket, used=payload.cpu_used),
        rooms=rooms,
        creeps=set(payload.creeps) if payload.creeps is not None else None,
    )

    try:
        host.validate()
    except HostContextError as e:
        raise HTTPException(status_code=400, detail=str(e))

    kernel = build_kernel(KernelSettings())
    report = kernel.run(host, store)
    logger.debug(f"Simulated cycle {payload.tick}: {report.status.value}")
    return {"report": report.to_dict(), "store": store}
