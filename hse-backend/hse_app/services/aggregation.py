from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

from ..catalog import LTI, LTIF_SCALE, MANHOURS, Contract, Indicator, IndicatorKind
from ..models import (
    IndicatorDataset,
    PlannedActual,
    PlannedActualTotalRow,
    SingleTotalRow,
    TotalsView,
)


def _sum_present(values: Iterable[Optional[float]]) -> Optional[float]:
    total: Optional[float] = None
    for value in values:
        if value is None:
            continue
        total = value if total is None else total + value
    return total


def ltif(lti: Optional[float], manhours: Optional[float]) -> Optional[float]:
    """Loss time injury frequency per million manhours; ``None`` when manhours is not positive."""
    hours = manhours or 0.0
    if hours <= 0:
        return None
    return ((lti or 0.0) * LTIF_SCALE) / hours


def _single_row(
    dataset: IndicatorDataset, indicator: Indicator, contract_ids: Sequence[str]
) -> SingleTotalRow:
    cells = dataset.table1.get(indicator.name, {})
    values = {contract_id: cells.get(contract_id) for contract_id in contract_ids}
    return SingleTotalRow(indicator=indicator.name, values=values, total=_sum_present(values.values()))


def _ltif_row(dataset: IndicatorDataset, indicator: Indicator, contract_ids: Sequence[str]) -> SingleTotalRow:
    manhours = dataset.table1.get(MANHOURS, {})
    injuries = dataset.table1.get(LTI, {})
    values = {
        contract_id: ltif(injuries.get(contract_id), manhours.get(contract_id))
        for contract_id in contract_ids
    }
    # Ratio of sums, never a sum or mean of the per-contract rates
    total_manhours = sum(manhours.get(contract_id) or 0.0 for contract_id in contract_ids)
    total_lti = sum(injuries.get(contract_id) or 0.0 for contract_id in contract_ids)
    return SingleTotalRow(
        indicator=indicator.name,
        derived=True,
        values=values,
        total=ltif(total_lti, total_manhours),
    )


def _planned_actual_row(
    dataset: IndicatorDataset, indicator: Indicator, contract_ids: Sequence[str]
) -> PlannedActualTotalRow:
    cells = dataset.table2.get(indicator.name, {})
    values = {contract_id: cells.get(contract_id) or PlannedActual() for contract_id in contract_ids}
    total = PlannedActual(
        planned=_sum_present(pair.planned for pair in values.values()),
        actual=_sum_present(pair.actual for pair in values.values()),
    )
    return PlannedActualTotalRow(indicator=indicator.name, values=values, total=total)


def monthly_total(
    dataset: IndicatorDataset,
    contracts: Sequence[Contract],
    indicators: Iterable[Indicator],
    months: Sequence[str] = (),
) -> TotalsView:
    """Per-contract values of one dataset plus a Total column for every indicator."""
    contract_ids = [contract.id for contract in contracts]
    view = TotalsView(months=list(months), contracts=contract_ids)
    for indicator in indicators:
        if indicator.kind is IndicatorKind.SINGLE:
            if indicator.derived:
                view.table1.append(_ltif_row(dataset, indicator, contract_ids))
            else:
                view.table1.append(_single_row(dataset, indicator, contract_ids))
        elif indicator.kind is IndicatorKind.PLANNED_ACTUAL:
            view.table2.append(_planned_actual_row(dataset, indicator, contract_ids))
    return view


def sum_datasets(
    datasets: Iterable[IndicatorDataset],
    contracts: Sequence[Contract],
    indicators: Iterable[Indicator],
) -> IndicatorDataset:
    """Running sum of every cell across ``datasets``; a cell stays ``None`` only if no dataset had a value."""
    contract_ids = [contract.id for contract in contracts]
    indicators = list(indicators)
    table1: Dict[str, Dict[str, Optional[float]]] = {}
    table2: Dict[str, Dict[str, PlannedActual]] = {}
    for indicator in indicators:
        if indicator.kind is IndicatorKind.SINGLE:
            table1[indicator.name] = {contract_id: None for contract_id in contract_ids}
        else:
            table2[indicator.name] = {contract_id: PlannedActual() for contract_id in contract_ids}

    for dataset in datasets:
        for indicator in indicators:
            if indicator.kind is IndicatorKind.SINGLE:
                if indicator.derived:
                    continue
                cells = dataset.table1.get(indicator.name, {})
                running = table1[indicator.name]
                for contract_id in contract_ids:
                    running[contract_id] = _sum_present((running[contract_id], cells.get(contract_id)))
            else:
                cells = dataset.table2.get(indicator.name, {})
                running_pairs = table2[indicator.name]
                for contract_id in contract_ids:
                    pair = cells.get(contract_id)
                    if pair is None:
                        continue
                    current = running_pairs[contract_id]
                    running_pairs[contract_id] = PlannedActual(
                        planned=_sum_present((current.planned, pair.planned)),
                        actual=_sum_present((current.actual, pair.actual)),
                    )
    return IndicatorDataset(table1=table1, table2=table2)


def cumulative(
    datasets: Sequence[IndicatorDataset],
    contracts: Sequence[Contract],
    indicators: Iterable[Indicator],
    months: Sequence[str] = (),
) -> TotalsView:
    """All-months view: cells are summed across months, then totalled like a single month."""
    indicators = list(indicators)
    summed = sum_datasets(datasets, contracts, indicators)
    return monthly_total(summed, contracts, indicators, months=months)
