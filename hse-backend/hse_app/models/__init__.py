from .hse import (
    ConfigResponse,
    ContractInfo,
    DatasetPatch,
    ExtractionResult,
    IndicatorDataset,
    IndicatorInfo,
    MonthInfo,
    MonthStatus,
    MonthStatusResponse,
    PlannedActual,
    PlannedActualTotalRow,
    ProjectInfo,
    SaveResponse,
    SingleTotalRow,
    TotalsView,
    UploadResponse,
    coerce_number,
)

__all__ = [
    "ConfigResponse",
    "ContractInfo",
    "DatasetPatch",
    "ExtractionResult",
    "IndicatorDataset",
    "IndicatorInfo",
    "MonthInfo",
    "MonthStatus",
    "MonthStatusResponse",
    "PlannedActual",
    "PlannedActualTotalRow",
    "ProjectInfo",
    "SaveResponse",
    "SingleTotalRow",
    "TotalsView",
    "UploadResponse",
    "coerce_number",
]
