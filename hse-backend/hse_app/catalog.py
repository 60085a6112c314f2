from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class IndicatorKind(str, Enum):
    SINGLE = "single"
    PLANNED_ACTUAL = "planned_actual"


@dataclass(frozen=True)
class Contract:
    id: str
    label: str


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    short_name: str
    description: str
    color: str
    contracts: Tuple[Contract, ...]

    def contract_ids(self) -> List[str]:
        return [contract.id for contract in self.contracts]

    def has_contract(self, contract_id: str) -> bool:
        return any(contract.id == contract_id for contract in self.contracts)


@dataclass(frozen=True)
class Month:
    id: str
    label: str


@dataclass(frozen=True)
class Indicator:
    name: str
    kind: IndicatorKind
    keywords: Tuple[str, ...]
    derived: bool = False


MANHOURS = "Manhours"
LTI = "Loss Time Injury (LTI)"
LTIF = "Loss Time Injury Frequency (LTIF)"
LTIF_SCALE = 1_000_000


_STANDARD_CONTRACTS: Tuple[Contract, ...] = (
    Contract("P2", "P2 (MHB)"),
    Contract("P3", "P3 (HHA)"),
    Contract("P6", "P6 (WASCO)"),
    Contract("P7", "P7 (T&I)"),
    Contract("P8", "P8 (Drilling)"),
    Contract("P9", "P9 (TBA)"),
)

PROJECTS: Tuple[Project, ...] = (
    Project(
        id="sapih-tiram-wangsa",
        name="Sapih Tiram Wangsa",
        short_name="STW",
        description="Sapih Tiram and Wangsa FDP",
        color="#1a5276",
        contracts=_STANDARD_CONTRACTS,
    ),
    Project(
        id="chenda",
        name="Chenda",
        short_name="CHD",
        description="Chenda Project",
        color="#117a65",
        contracts=_STANDARD_CONTRACTS,
    ),
    Project(
        id="sirung",
        name="Sirung",
        short_name="SRG",
        description="Sirung Project",
        color="#7d3c98",
        contracts=(Contract("P11", "P11 (BHSB)"),) + _STANDARD_CONTRACTS[1:],
    ),
)

# Reporting year runs March to December 2026
MONTHS: Tuple[Month, ...] = (
    Month("Mar-26", "March 2026"),
    Month("Apr-26", "April 2026"),
    Month("May-26", "May 2026"),
    Month("Jun-26", "June 2026"),
    Month("Jul-26", "July 2026"),
    Month("Aug-26", "August 2026"),
    Month("Sep-26", "September 2026"),
    Month("Oct-26", "October 2026"),
    Month("Nov-26", "November 2026"),
    Month("Dec-26", "December 2026"),
)


def _single(name: str, *keywords: str, derived: bool = False) -> Indicator:
    return Indicator(name=name, kind=IndicatorKind.SINGLE, keywords=keywords, derived=derived)


def _planned_actual(name: str, *keywords: str) -> Indicator:
    return Indicator(name=name, kind=IndicatorKind.PLANNED_ACTUAL, keywords=keywords)


# Keyword order is the first tie-break axis of the extractor.
INDICATORS: Tuple[Indicator, ...] = (
    _single(MANHOURS, "manhours", "man-hours", "man hours", "working hours", "total hours", "exposure hours"),
    _single("Fatality", "fatality", "fatalities", "fatal", "death"),
    _single(LTI, "loss time injury", "lti", "lost time injury", "lost time incident"),
    _single(LTIF, "ltif", "loss time injury frequency", "lost time injury frequency", derived=True),
    _single("Major Oil Spills", "oil spill", "oil spills", "major spill"),
    _single("Major Fire", "major fire", "fire incident", "fire"),
    _single("Major Loss of Primary Containment (LOPC)", "lopc", "loss of primary containment", "loss of containment"),
    _single(
        "Medical Treatment / Restricted Work Case (MTC/RWC)",
        "medical treatment case",
        "mtc",
        "restricted work case",
        "rwc",
        "mtc/rwc",
    ),
    _single("First Aid Cases (FAC)", "first aid case", "first aid", "fac"),
    _single("Property Damage", "property damage", "damage to property"),
    _single("Near Miss Case", "near miss", "near-miss", "nearmiss"),
    _single("Unsafe Act / Unsafe Condition", "unsafe act", "unsafe condition", "unsafe act/condition"),
    _single("Stop Work", "stop work", "stopwork", "stop work authority", "swa"),
    _planned_actual("Permanent Total / Partial Disability (PPD/PTD)", "ppd", "ptd", "permanent disability", "partial disability"),
    _planned_actual("Management Walkabout", "management walkabout", "management visit", "walkabout"),
    _planned_actual("HSSE Safe Work Campaign", "safe work campaign", "safety campaign", "hsse campaign"),
    _planned_actual("HSSE Training Compliance", "training compliance", "hsse training"),
    _planned_actual("HSSE Audit", "hsse audit", "safety audit", "audit"),
    _planned_actual("Safety Training", "safety training", "training session", "safety course"),
)


@dataclass(frozen=True)
class Catalog:
    """Read-only bundle of the project, month and indicator registries."""

    projects: Tuple[Project, ...] = PROJECTS
    months: Tuple[Month, ...] = MONTHS
    indicators: Tuple[Indicator, ...] = INDICATORS
    _projects_by_id: Dict[str, Project] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_projects_by_id", {project.id: project for project in self.projects})

    def project(self, project_id: str) -> Optional[Project]:
        return self._projects_by_id.get(project_id)

    def month(self, month_id: str) -> Optional[Month]:
        for month in self.months:
            if month.id == month_id:
                return month
        return None

    def indicator(self, name: str) -> Optional[Indicator]:
        for indicator in self.indicators:
            if indicator.name == name:
                return indicator
        return None

    @property
    def single_indicators(self) -> List[Indicator]:
        return [indicator for indicator in self.indicators if indicator.kind is IndicatorKind.SINGLE]

    @property
    def planned_actual_indicators(self) -> List[Indicator]:
        return [indicator for indicator in self.indicators if indicator.kind is IndicatorKind.PLANNED_ACTUAL]


DEFAULT_CATALOG = Catalog()


def get_catalog() -> Catalog:
    return DEFAULT_CATALOG
