"""
searchsync exception definitions

All custom exceptions inherit from SearchSyncError
"""


class SearchSyncError(Exception):
    """Base searchsync exception"""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


class ConfigError(SearchSyncError):
    """Invalid configuration"""

    pass


class ValidationError(SearchSyncError):
    """Invalid input passed to the public API"""

    pass


class MappingError(SearchSyncError):
    """Invalid, ambiguous or unsupported mapping metadata"""

    pass


class StorageError(SearchSyncError):
    """Search engine storage failure"""

    pass


class IndexBootstrapError(StorageError):
    """Index or mapping creation failed for a reason other than already-exists"""

    pass


class IndexWriteError(StorageError):
    """Document upsert failed"""

    pass


class IndexDeleteError(StorageError):
    """Document delete failed"""

    pass


class DispatchError(SearchSyncError):
    """Delivery handler misconfiguration"""

    pass
