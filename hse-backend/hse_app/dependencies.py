from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from .catalog import Catalog, Month, Project, get_catalog
from .repos.record_store import RecordStore


def get_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def resolve_project(project_id: str, catalog: Catalog = Depends(get_catalog)) -> Project:
    project = catalog.project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def resolve_month(month_id: str, catalog: Catalog = Depends(get_catalog)) -> Month:
    month = catalog.month(month_id)
    if month is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Month not found")
    return month
