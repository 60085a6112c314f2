from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..catalog import Catalog, Month, Project, get_catalog
from ..dependencies import get_store, resolve_month, resolve_project
from ..models import TotalsView
from ..repos.record_store import RecordStore
from ..services.aggregation import cumulative, monthly_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["totals"])


@router.get("/totals/{project_id}/{month_id}", response_model=TotalsView)
def month_totals(
    project: Project = Depends(resolve_project),
    month: Month = Depends(resolve_month),
    catalog: Catalog = Depends(get_catalog),
    store: RecordStore = Depends(get_store),
) -> TotalsView:
    dataset = store.load(project, month.id)
    return monthly_total(dataset, project.contracts, catalog.indicators, months=[month.id])


@router.get("/cumulative/{project_id}", response_model=TotalsView)
def cumulative_totals(
    project: Project = Depends(resolve_project),
    catalog: Catalog = Depends(get_catalog),
    store: RecordStore = Depends(get_store),
) -> TotalsView:
    month_ids = [month.id for month in catalog.months]
    datasets = store.load_all(project, month_ids)
    view = cumulative(datasets, project.contracts, catalog.indicators, months=month_ids)
    logger.info("cumulative project_id=%s months=%s storage=%s", project.id, len(month_ids), store.storage_name)
    return view
