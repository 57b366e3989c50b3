"""
Asset Registry

Keyed asset records on an append-only ledger, fronted by a bounded
write-through cache, with a confidential side collection per asset.
"""

from .cache import BoundedCache, CacheStats
from .codec import decode_asset, encode_asset, sanitize_field
from .exceptions import (
    AssetExistsError,
    AssetNotFoundError,
    ErrorKind,
    InvalidEncodingError,
    InvalidInputError,
    OperationError,
    PrivateDataError,
    RegistryError,
)
from .ledger import LedgerGateway, MemoryLedger
from .manager import PRIVATE_DATA_COLLECTION, TRANSIENT_PROPERTIES_KEY, RegistryManager
from .schema import Asset, HistoryEntry
from .storage import FileLedger

__version__ = "1.0.0"

__all__ = [
    'Asset',
    'AssetExistsError',
    'AssetNotFoundError',
    'BoundedCache',
    'CacheStats',
    'ErrorKind',
    'FileLedger',
    'HistoryEntry',
    'InvalidEncodingError',
    'InvalidInputError',
    'LedgerGateway',
    'MemoryLedger',
    'OperationError',
    'PRIVATE_DATA_COLLECTION',
    'PrivateDataError',
    'RegistryError',
    'RegistryManager',
    'TRANSIENT_PROPERTIES_KEY',
    'decode_asset',
    'encode_asset',
    'sanitize_field',
]
