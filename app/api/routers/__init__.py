"""
app/api/routers package marker.
"""

from app.api.routers.bulk_import import router as bulk_import_router
from app.api.routers.column_dictionary import router as column_dictionary_router
from app.api.routers.history import router as history_router
from app.api.routers.persons import router as person_router

__all__ = [
    "bulk_import_router",
    "column_dictionary_router",
    "history_router",
    "person_router",
]
