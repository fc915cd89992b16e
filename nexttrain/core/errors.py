"""Error taxonomy for timetable synchronization."""
from typing import Optional


class SyncError(Exception):
    """Base class for failures that skip one service date."""

    def __init__(self, message: str, date: Optional[str] = None):
        super().__init__(message)
        self.date = date


class TransportError(SyncError):
    """Feed unreachable, rejected the signature, or returned an unreadable body."""

    def __init__(self, message: str, date: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, date=date)
        self.status = status


class FeedIntegrityError(SyncError):
    """Declared train count does not match the entries actually delivered."""

    def __init__(self, declared: int, actual: int, date: Optional[str] = None):
        super().__init__(f"received incomplete data. total: {actual}, expect {declared}", date=date)
        self.declared = declared
        self.actual = actual


class PersistenceError(SyncError):
    """A write to the document store failed."""

    def __init__(self, message: str, date: Optional[str] = None, train_id: Optional[str] = None):
        super().__init__(message, date=date)
        self.train_id = train_id


class DocumentStoreError(Exception):
    """Raised by the document store for failed reads and writes."""
