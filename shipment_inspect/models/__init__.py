"""Domain models for the shipment inspection engine.

This package contains the typed models shared by the column resolver, the
status classifier, the aggregation engine and the dataset controller.
"""

from .config_models import InspectionConfig
from .dataset import Dataset
from .error_record import ErrorRecord
from .rollup import PackCounts, RollupRecord, StatusCounts
from .row import NormalizedRow, RawRow, cell_text
from .source import LoadStatus, SourceLoad
from .status import StatusCategory, StatusFilter

__all__ = [
    # Configuration models
    "InspectionConfig",
    # Row / dataset models
    "NormalizedRow",
    "RawRow",
    "Dataset",
    "cell_text",
    # Derived models
    "StatusCategory",
    "StatusFilter",
    "RollupRecord",
    "StatusCounts",
    "PackCounts",
    # Ingestion models
    "LoadStatus",
    "SourceLoad",
    "ErrorRecord",
]
