from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from ..catalog import Catalog, get_catalog
from ..models import ConfigResponse, ContractInfo, IndicatorInfo, MonthInfo, ProjectInfo

router = APIRouter(prefix="/api", tags=["config"])


@router.get("/config", response_model=ConfigResponse)
def get_config(response: Response, catalog: Catalog = Depends(get_catalog)) -> ConfigResponse:
    projects = {
        project.id: ProjectInfo(
            id=project.id,
            name=project.name,
            shortName=project.short_name,
            description=project.description,
            color=project.color,
            contracts=[ContractInfo(id=contract.id, label=contract.label) for contract in project.contracts],
        )
        for project in catalog.projects
    }
    response.headers["Cache-Control"] = "public, max-age=300"
    return ConfigResponse(
        projects=projects,
        table1Indicators=[indicator.name for indicator in catalog.single_indicators],
        table2Indicators=[indicator.name for indicator in catalog.planned_actual_indicators],
        indicators=[
            IndicatorInfo(
                name=indicator.name,
                kind=indicator.kind,
                derived=indicator.derived,
                keywords=list(indicator.keywords),
            )
            for indicator in catalog.indicators
        ],
        months=[MonthInfo(id=month.id, label=month.label) for month in catalog.months],
    )
