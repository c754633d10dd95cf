from app.directory.client import DirectoryClient, HttpDirectoryClient
from app.directory.config import DirectoryClientConfig
from app.directory.errors import DirectoryError, DirectoryProtocolError, DirectoryTransportError
from app.directory.results import Absent, Found, LookupResult, TransportFailure, unwrap_lookup
from app.directory.schemas import DirectoryAccount, DirectoryContact, ValidationResult

__all__ = [
    "DirectoryClient",
    "HttpDirectoryClient",
    "DirectoryClientConfig",
    "DirectoryError",
    "DirectoryTransportError",
    "DirectoryProtocolError",
    "Found",
    "Absent",
    "TransportFailure",
    "LookupResult",
    "unwrap_lookup",
    "DirectoryAccount",
    "DirectoryContact",
    "ValidationResult",
]
