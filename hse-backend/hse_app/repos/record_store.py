from __future__ import annotations

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter
from typing import Dict, Iterable, List, Optional, Sequence

from psycopg.rows import dict_row
from psycopg.types.json import Json
from pydantic import ValidationError

from ..catalog import Indicator, IndicatorKind, Project
from ..db import get_pool
from ..models import DatasetPatch, IndicatorDataset, PlannedActual

logger = logging.getLogger(__name__)


class UnknownReferenceError(LookupError):
    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} '{identifier}' not found")


def empty_dataset(project: Project, indicators: Iterable[Indicator]) -> IndicatorDataset:
    table1: Dict[str, Dict[str, Optional[float]]] = {}
    table2: Dict[str, Dict[str, PlannedActual]] = {}
    for indicator in indicators:
        if indicator.kind is IndicatorKind.SINGLE:
            table1[indicator.name] = {contract_id: None for contract_id in project.contract_ids()}
        else:
            table2[indicator.name] = {contract_id: PlannedActual() for contract_id in project.contract_ids()}
    return IndicatorDataset(table1=table1, table2=table2)


def complete_dataset(
    dataset: IndicatorDataset, project: Project, indicators: Iterable[Indicator]
) -> IndicatorDataset:
    """Fill in any indicator/contract cell the stored record is missing."""
    completed = empty_dataset(project, indicators)
    for name, cells in completed.table1.items():
        stored = dataset.table1.get(name, {})
        for contract_id in cells:
            cells[contract_id] = stored.get(contract_id)
    for name, pairs in completed.table2.items():
        stored_pairs = dataset.table2.get(name, {})
        for contract_id in pairs:
            stored_pair = stored_pairs.get(contract_id)
            if stored_pair is not None:
                pairs[contract_id] = stored_pair.model_copy()
    completed.last_updated = dataset.last_updated
    return completed


def merge_dataset(
    existing: IndicatorDataset,
    patch: DatasetPatch,
    project: Project,
    indicators: Iterable[Indicator],
) -> IndicatorDataset:
    """Apply ``patch`` on top of ``existing`` and return the merged copy.

    Only non-null values overwrite; unknown indicator names and the derived
    LTIF row are ignored. Unknown contracts raise ``UnknownReferenceError``.
    """
    for contract_id in patch.contract_ids():
        if not project.has_contract(contract_id):
            raise UnknownReferenceError("contract", contract_id)

    indicators = list(indicators)
    merged = complete_dataset(existing, project, indicators)
    by_name = {indicator.name: indicator for indicator in indicators}

    for name, cells in patch.table1.items():
        indicator = by_name.get(name)
        if indicator is None or indicator.kind is not IndicatorKind.SINGLE or indicator.derived:
            continue
        for contract_id, value in cells.items():
            if value is not None:
                merged.table1[name][contract_id] = value

    for name, pairs in patch.table2.items():
        indicator = by_name.get(name)
        if indicator is None or indicator.kind is not IndicatorKind.PLANNED_ACTUAL:
            continue
        for contract_id, pair in pairs.items():
            if pair is None:
                continue
            current = merged.table2[name][contract_id]
            if pair.planned is not None:
                current.planned = pair.planned
            if pair.actual is not None:
                current.actual = pair.actual
    return merged


class RecordStore(ABC):
    """One indicator dataset per (project, month), merged on save."""

    storage_name: str = "abstract"

    def __init__(self, indicators: Sequence[Indicator]):
        self.indicators = tuple(indicators)

    @abstractmethod
    def load(self, project: Project, month_id: str) -> IndicatorDataset:
        ...

    @abstractmethod
    def save(self, project: Project, month_id: str, patch: DatasetPatch) -> IndicatorDataset:
        ...

    def load_all(self, project: Project, month_ids: Sequence[str]) -> List[IndicatorDataset]:
        return [self.load(project, month_id) for month_id in month_ids]


class JsonFileRecordStore(RecordStore):
    """Keeps each dataset in ``{project}_{month}.json`` under ``data_dir``."""

    storage_name = "json"

    def __init__(self, data_dir: Path, indicators: Sequence[Indicator]):
        super().__init__(indicators)
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()

    def _path(self, project_id: str, month_id: str) -> Path:
        return self.data_dir / f"{project_id}_{month_id}.json"

    def _read(self, project: Project, month_id: str) -> IndicatorDataset:
        path = self._path(project.id, month_id)
        if not path.exists():
            return empty_dataset(project, self.indicators)
        try:
            stored = IndicatorDataset.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError):
            logger.warning("Unreadable dataset file %s; treating as empty", path, exc_info=True)
            return empty_dataset(project, self.indicators)
        return complete_dataset(stored, project, self.indicators)

    def _write(self, project_id: str, month_id: str, dataset: IndicatorDataset) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(project_id, month_id)
        payload = dataset.model_dump_json(by_alias=True, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def load(self, project: Project, month_id: str) -> IndicatorDataset:
        return self._read(project, month_id)

    def save(self, project: Project, month_id: str, patch: DatasetPatch) -> IndicatorDataset:
        start = perf_counter()
        with self._lock:
            existing = self._read(project, month_id)
            merged = merge_dataset(existing, patch, project, self.indicators)
            merged.last_updated = datetime.now(timezone.utc)
            self._write(project.id, month_id, merged)
        elapsed = (perf_counter() - start) * 1000
        logger.debug("json save project_id=%s month_id=%s elapsed_ms=%.2f", project.id, month_id, elapsed)
        return merged


class PostgresRecordStore(RecordStore):
    """Stores datasets as JSONB rows in ``hse.indicator_datasets``."""

    storage_name = "postgres"

    def _from_row(self, project: Project, row: Optional[dict]) -> IndicatorDataset:
        if not row:
            return empty_dataset(project, self.indicators)
        stored = IndicatorDataset(
            table1=row["table1"] or {},
            table2=row["table2"] or {},
            lastUpdated=row["last_updated"],
        )
        return complete_dataset(stored, project, self.indicators)

    def load(self, project: Project, month_id: str) -> IndicatorDataset:
        start = perf_counter()
        with get_pool().connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT table1, table2, last_updated
                    FROM hse.indicator_datasets
                    WHERE project_id = %s AND month_id = %s
                    """,
                    (project.id, month_id),
                )
                row = cur.fetchone()
        elapsed = (perf_counter() - start) * 1000
        logger.debug("load project_id=%s month_id=%s found=%s elapsed_ms=%.2f", project.id, month_id, bool(row), elapsed)
        return self._from_row(project, row)

    def load_all(self, project: Project, month_ids: Sequence[str]) -> List[IndicatorDataset]:
        start = perf_counter()
        with get_pool().connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT month_id, table1, table2, last_updated
                    FROM hse.indicator_datasets
                    WHERE project_id = %s AND month_id = ANY(%s)
                    """,
                    (project.id, list(month_ids)),
                )
                rows = {row["month_id"]: row for row in cur.fetchall()}
        elapsed = (perf_counter() - start) * 1000
        logger.debug("load_all project_id=%s months=%s rows=%s elapsed_ms=%.2f", project.id, len(month_ids), len(rows), elapsed)
        return [self._from_row(project, rows.get(month_id)) for month_id in month_ids]

    def save(self, project: Project, month_id: str, patch: DatasetPatch) -> IndicatorDataset:
        start = perf_counter()
        with get_pool().connection() as conn:
            with conn.transaction():
                with conn.cursor(row_factory=dict_row) as cur:
                    # make sure a row exists so FOR UPDATE has something to lock
                    cur.execute(
                        """
                        INSERT INTO hse.indicator_datasets (project_id, month_id)
                        VALUES (%s, %s)
                        ON CONFLICT (project_id, month_id) DO NOTHING
                        """,
                        (project.id, month_id),
                    )
                    cur.execute(
                        """
                        SELECT table1, table2, last_updated
                        FROM hse.indicator_datasets
                        WHERE project_id = %s AND month_id = %s
                        FOR UPDATE
                        """,
                        (project.id, month_id),
                    )
                    existing = self._from_row(project, cur.fetchone())
                    merged = merge_dataset(existing, patch, project, self.indicators)
                    merged.last_updated = datetime.now(timezone.utc)
                    payload = merged.model_dump(mode="json")
                    cur.execute(
                        """
                        UPDATE hse.indicator_datasets
                        SET table1 = %s, table2 = %s, last_updated = %s
                        WHERE project_id = %s AND month_id = %s
                        """,
                        (Json(payload["table1"]), Json(payload["table2"]), merged.last_updated, project.id, month_id),
                    )
        elapsed = (perf_counter() - start) * 1000
        logger.debug("save project_id=%s month_id=%s elapsed_ms=%.2f", project.id, month_id, elapsed)
        return merged


def build_record_store(database_available: bool, data_dir: Path, indicators: Sequence[Indicator]) -> RecordStore:
    if database_available:
        return PostgresRecordStore(indicators)
    return JsonFileRecordStore(data_dir, indicators)
