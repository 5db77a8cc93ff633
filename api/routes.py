from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ingestion.models.domain import Snapshot
from ingestion.settings import get_settings
from publish.snapshot_store import SnapshotStore, is_date_key

router = APIRouter()


def get_snapshot_store() -> SnapshotStore:
    cfg = get_settings()
    return SnapshotStore(cfg.digest_data_dir, cfg.digest_archive_dir)


StoreDep = Annotated[SnapshotStore, Depends(get_snapshot_store)]


def _snapshot_response(snapshot: Snapshot, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(snapshot.model_dump(mode="json"), headers=headers)


@router.get("/data/latest.json", tags=["snapshots"])
async def latest_snapshot(store: StoreDep) -> JSONResponse:
    snapshot = store.read_latest()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No snapshot has been published yet")
    # clients rely on the offline layer for caching
    return _snapshot_response(snapshot, headers={"Cache-Control": "no-cache"})


@router.get("/archives", tags=["snapshots"])
async def list_archives(store: StoreDep) -> dict[str, list[str]]:
    return {"dates": store.list_archives()}


@router.get("/archives/{date_key}.json", tags=["snapshots"])
async def archive_snapshot(date_key: str, store: StoreDep) -> JSONResponse:
    if not is_date_key(date_key):
        raise HTTPException(status_code=400, detail="Archive key must be YYYY-MM-DD")
    snapshot = store.read_archive(date_key)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Archive not found")
    return _snapshot_response(snapshot)
