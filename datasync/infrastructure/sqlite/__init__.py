from .database import SQLiteDatabase
from .data_service import SQLiteDataService

__all__ = [
    "SQLiteDatabase",
    "SQLiteDataService",
]
