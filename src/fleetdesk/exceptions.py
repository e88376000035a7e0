class FleetDeskError(Exception):
    """Base exception for FleetDesk errors."""
    pass

class ConfigError(FleetDeskError):
    """Configuration loading specific errors."""
    pass

class DataSourceError(FleetDeskError):
    """Uploaded or pasted source could not be read."""
    pass

class StorageError(FleetDeskError):
    """Storage backend fault (unavailable client, network, quota, conflict)."""
    pass


class CommitError(StorageError):
    """
    Raised when the replace-by-date commit aborts part way.
    Carries how far the commit got so callers can report the partial state.
    """

    def __init__(self, message: str, *, date: str, step: str, deleted: int = 0, inserted: int = 0):
        super().__init__(message)
        self.date = date
        self.step = step
        self.deleted = deleted
        self.inserted = inserted

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "step": self.step,
            "deleted": self.deleted,
            "inserted": self.inserted,
        }
