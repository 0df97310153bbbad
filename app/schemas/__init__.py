"""
app/schemas package marker.
"""

from app.schemas.bulk_import import (
    ImportJobAcceptedResponse,
    ImportJobListResponse,
    ImportJobStatusResponse,
    ImportSummaryResponse,
    RowOutcomeListResponse,
    RowOutcomeResponse,
)
from app.schemas.column_dictionary import (
    ColumnDefinitionPayload,
    ColumnDefinitionResponse,
    ColumnDefinitionUpdate,
    ColumnDictionaryResponse,
)
from app.schemas.history import HistoryEntryResponse, HistoryListResponse
from app.schemas.person import PersonListResponse, PersonResponse, PersonValuesPayload

__all__ = [
    "ImportJobAcceptedResponse",
    "ImportJobListResponse",
    "ImportJobStatusResponse",
    "ImportSummaryResponse",
    "RowOutcomeListResponse",
    "RowOutcomeResponse",
    "ColumnDefinitionPayload",
    "ColumnDefinitionResponse",
    "ColumnDefinitionUpdate",
    "ColumnDictionaryResponse",
    "HistoryEntryResponse",
    "HistoryListResponse",
    "PersonListResponse",
    "PersonResponse",
    "PersonValuesPayload",
]
