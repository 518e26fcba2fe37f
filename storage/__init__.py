"""
Storage — SQLite-backed repositories and the attachment bucket.
"""

from core.db import DatabaseManager, NotFoundError, StorageError

from .attachments import AttachmentStore
from .boxes import InvestmentBoxRepository
from .settings import SettingsRepository, merge_preferences
from .transactions import TransactionRepository

__all__ = [
    "DatabaseManager",
    "NotFoundError",
    "StorageError",
    "AttachmentStore",
    "InvestmentBoxRepository",
    "SettingsRepository",
    "merge_preferences",
    "TransactionRepository",
]
