from fastapi import APIRouter, Depends, HTTPException

from nexttrain.core.errors import SyncError
from nexttrain.dependencies import Services, get_services
from nexttrain.schemas.timetable import SERVICE_DATES, TRAIN_STOPS
from nexttrain.utils.response import success_response
from nexttrain.utils.time_utils import date_key, parse_service_date

router = APIRouter(prefix="/admin", tags=["admin"])  # protected by API key dependency when included


def _require_sync(services: Services):
    if services.sync is None:
        raise HTTPException(status_code=503, detail="Timetable sync is not configured")
    return services.sync


@router.post("/sync", summary="Sync timetable window", description="Refreshes every date of the rolling window and reports per-date outcomes.")
async def sync_window(services: Services = Depends(get_services)):
    sync = _require_sync(services)
    if services.syncer is not None:
        outcomes = await services.syncer.run_once()
    else:
        outcomes = await sync.sync_window()
    return success_response([o.to_dict() for o in outcomes])


@router.post("/sync/{service_date}", summary="Sync one service date")
async def sync_one_date(service_date: str, services: Services = Depends(get_services)):
    sync = _require_sync(services)
    try:
        d = parse_service_date(service_date)
    except ValueError:
        raise HTTPException(status_code=400, detail="Date must be YYYY-MM-DD or YYYYMMDD")
    try:
        outcome = await sync.sync_date(d)
    except SyncError as e:
        raise HTTPException(status_code=502, detail=f"{type(e).__name__}: {e}")
    return success_response(outcome.to_dict())


@router.get("/sync/last", summary="Last background sync", description="Outcomes of the most recent window refresh.")
def last_sync(services: Services = Depends(get_services)):
    syncer = services.syncer
    if syncer is None:
        return success_response({"last_run_at": None, "outcomes": []})
    return success_response({
        "last_run_at": syncer.last_run_at.isoformat() if syncer.last_run_at else None,
        "outcomes": [o.to_dict() for o in syncer.last_outcomes],
    })


@router.get("/dates/{service_date}", summary="Stored service date", responses={404: {"description": "Service date not found"}})
def get_service_date(service_date: str, services: Services = Depends(get_services)):
    try:
        key = date_key(parse_service_date(service_date))
    except ValueError:
        raise HTTPException(status_code=400, detail="Date must be YYYY-MM-DD or YYYYMMDD")
    path = f"{SERVICE_DATES}/{key}"
    doc = services.store.get(path)
    if doc is None:
        raise HTTPException(status_code=404, detail="Service date not found")
    data = dict(doc.data)
    data["id"] = key
    data["stopCount"] = services.store.count(path, TRAIN_STOPS)
    return success_response(data)
