from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..catalog import IndicatorKind


def coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or ``None`` for blanks and non-numeric input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class PlannedActual(BaseModel):
    planned: Optional[float] = None
    actual: Optional[float] = None

    @field_validator("planned", "actual", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Optional[float]:
        return coerce_number(value)

    def is_empty(self) -> bool:
        return self.planned is None and self.actual is None


def _coerce_table1(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    coerced: Dict[str, Any] = {}
    for indicator, cells in value.items():
        if cells is None:
            cells = {}
        if not isinstance(cells, dict):
            # left for pydantic to reject
            coerced[indicator] = cells
            continue
        coerced[indicator] = {contract: coerce_number(raw) for contract, raw in cells.items()}
    return coerced


def _coerce_table2(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    coerced: Dict[str, Any] = {}
    for indicator, cells in value.items():
        if cells is None:
            cells = {}
        if not isinstance(cells, dict):
            coerced[indicator] = cells
            continue
        coerced[indicator] = {
            contract: (raw if isinstance(raw, (dict, PlannedActual)) else None)
            for contract, raw in cells.items()
        }
    return coerced


class IndicatorDataset(BaseModel):
    """Stored values of one project for one month.

    ``table1`` holds single-valued indicators, ``table2`` planned/actual pairs.
    Every indicator and contract of the project has an entry; values are
    ``None`` until entered.
    """

    model_config = ConfigDict(populate_by_name=True)

    table1: Dict[str, Dict[str, Optional[float]]] = Field(default_factory=dict)
    table2: Dict[str, Dict[str, PlannedActual]] = Field(default_factory=dict)
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")

    @field_validator("table1", mode="before")
    @classmethod
    def _coerce_table1(cls, value: Any) -> Any:
        return _coerce_table1(value)

    @field_validator("table2", mode="before")
    @classmethod
    def _coerce_table2(cls, value: Any) -> Any:
        coerced = _coerce_table2(value)
        if isinstance(coerced, dict):
            return {
                indicator: (
                    {contract: raw if raw is not None else PlannedActual() for contract, raw in cells.items()}
                    if isinstance(cells, dict)
                    else cells
                )
                for indicator, cells in coerced.items()
            }
        return coerced

    def has_data(self) -> bool:
        for cells in self.table1.values():
            if any(value is not None for value in cells.values()):
                return True
        for cells in self.table2.values():
            if any(not pair.is_empty() for pair in cells.values()):
                return True
        return False


class DatasetPatch(BaseModel):
    """Partial dataset sent by a client; blanks and nulls never erase stored values."""

    table1: Dict[str, Dict[str, Optional[float]]] = Field(default_factory=dict)
    table2: Dict[str, Dict[str, Optional[PlannedActual]]] = Field(default_factory=dict)

    @field_validator("table1", mode="before")
    @classmethod
    def _coerce_table1(cls, value: Any) -> Any:
        if value is None:
            return {}
        return _coerce_table1(value)

    @field_validator("table2", mode="before")
    @classmethod
    def _coerce_table2(cls, value: Any) -> Any:
        if value is None:
            return {}
        return _coerce_table2(value)

    def contract_ids(self) -> set[str]:
        ids: set[str] = set()
        for cells in self.table1.values():
            ids.update(cells)
        for cells in self.table2.values():
            ids.update(cells)
        return ids


class ExtractionResult(BaseModel):
    """Values found in one uploaded report; indicators not found are left out."""

    table1: Dict[str, float] = Field(default_factory=dict)
    table2: Dict[str, PlannedActual] = Field(default_factory=dict)

    def found_count(self) -> int:
        return len(self.table1) + len(self.table2)

    def to_patch(self, contract_id: str) -> DatasetPatch:
        return DatasetPatch(
            table1={indicator: {contract_id: value} for indicator, value in self.table1.items()},
            table2={indicator: {contract_id: pair} for indicator, pair in self.table2.items()},
        )


class SingleTotalRow(BaseModel):
    indicator: str
    derived: bool = False
    values: Dict[str, Optional[float]]
    total: Optional[float] = None


class PlannedActualTotalRow(BaseModel):
    indicator: str
    values: Dict[str, PlannedActual]
    total: PlannedActual


class TotalsView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    months: List[str] = Field(default_factory=list)
    contracts: List[str] = Field(default_factory=list)
    table1: List[SingleTotalRow] = Field(default_factory=list)
    table2: List[PlannedActualTotalRow] = Field(default_factory=list)

    def single_row(self, indicator: str) -> Optional[SingleTotalRow]:
        return next((row for row in self.table1 if row.indicator == indicator), None)

    def planned_actual_row(self, indicator: str) -> Optional[PlannedActualTotalRow]:
        return next((row for row in self.table2 if row.indicator == indicator), None)


class ContractInfo(BaseModel):
    id: str
    label: str


class ProjectInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    short_name: str = Field(alias="shortName")
    description: str
    color: str
    contracts: List[ContractInfo]


class MonthInfo(BaseModel):
    id: str
    label: str


class IndicatorInfo(BaseModel):
    name: str
    kind: IndicatorKind
    derived: bool = False
    keywords: List[str]


class ConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    projects: Dict[str, ProjectInfo]
    table1_indicators: List[str] = Field(alias="table1Indicators")
    table2_indicators: List[str] = Field(alias="table2Indicators")
    indicators: List[IndicatorInfo]
    months: List[MonthInfo]


class SaveResponse(BaseModel):
    success: bool = True
    data: IndicatorDataset


class MonthStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    has_data: bool = Field(alias="hasData")


class MonthStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    months: List[MonthStatus]


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    filename: str
    contract_id: Optional[str] = Field(default=None, alias="contractId")
    extracted: ExtractionResult
    raw_text_preview: str = Field(default="", alias="rawTextPreview")
