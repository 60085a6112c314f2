from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from psycopg import Error as DatabaseError

from ..catalog import Catalog, Month, Project, get_catalog
from ..dependencies import get_store, resolve_month, resolve_project
from ..models import DatasetPatch, IndicatorDataset, MonthStatus, MonthStatusResponse, SaveResponse
from ..repos.record_store import RecordStore, UnknownReferenceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["data"])


@router.get("/data/{project_id}/{month_id}", response_model=IndicatorDataset)
def load_dataset(
    project: Project = Depends(resolve_project),
    month: Month = Depends(resolve_month),
    store: RecordStore = Depends(get_store),
) -> IndicatorDataset:
    return store.load(project, month.id)


@router.post("/data/{project_id}/{month_id}", response_model=SaveResponse)
def save_dataset(
    payload: DatasetPatch,
    project: Project = Depends(resolve_project),
    month: Month = Depends(resolve_month),
    store: RecordStore = Depends(get_store),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> SaveResponse:
    try:
        merged = store.save(project, month.id, payload)
    except UnknownReferenceError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (OSError, DatabaseError) as exc:
        logger.exception("save failed project_id=%s month_id=%s request_id=%s", project.id, month.id, x_request_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save") from exc
    logger.info(
        "save_dataset project_id=%s month_id=%s contracts=%s storage=%s request_id=%s",
        project.id,
        month.id,
        sorted(payload.contract_ids()),
        store.storage_name,
        x_request_id,
    )
    return SaveResponse(success=True, data=merged)


@router.get("/months/{project_id}", response_model=MonthStatusResponse)
def month_status(
    project: Project = Depends(resolve_project),
    catalog: Catalog = Depends(get_catalog),
    store: RecordStore = Depends(get_store),
) -> MonthStatusResponse:
    datasets = store.load_all(project, [month.id for month in catalog.months])
    return MonthStatusResponse(
        projectId=project.id,
        months=[
            MonthStatus(id=month.id, label=month.label, hasData=dataset.has_data())
            for month, dataset in zip(catalog.months, datasets)
        ],
    )
