"""
Asset Registry - Registry Manager

This module provides the registry operations: asset creation, queries,
ownership transfer, confidential details and history. Reads go through the
bounded cache first and fall back to the ledger gateway on a miss; writes go
to the ledger first and only then update the cache.

Concurrency: the manager takes no operation-level lock. A manager-wide write
lock covers each ledger write together with the cache update that follows it,
and the ledger read plus cache fill on a miss, so the cache always holds what
the ledger last received for a key. transfer_asset still reads, modifies and
writes back without a version check: two concurrent transfers of the same
asset may both start from the same prior owner, and the later write wins in
both the ledger and the cache.
"""

import json
import logging
import threading
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from .cache import DEFAULT_CAPACITY, BoundedCache
from .codec import decode_asset, encode_asset
from .exceptions import (
    AssetExistsError, AssetNotFoundError, InvalidInputError,
    OperationError, PrivateDataError
)
from .ledger import LedgerGateway
from .schema import Asset, normalize_text


PRIVATE_DATA_COLLECTION = "assetPrivateDetails"
TRANSIENT_PROPERTIES_KEY = "asset_properties"


def owner_index_key(owner: str) -> str:
    """Derived cache key for an owner's asset listing."""
    return f"{owner}_assets"


class RegistryManager:
    """Registry operations over a ledger gateway with a write-through cache."""

    def __init__(
        self,
        gateway: LedgerGateway,
        cache: Optional[BoundedCache] = None,
        cache_capacity: int = DEFAULT_CAPACITY,
        private_collection: str = PRIVATE_DATA_COLLECTION
    ):
        self.gateway = gateway
        self.cache = cache if cache is not None else BoundedCache(cache_capacity)
        self.private_collection = private_collection

        # Held across a ledger write and the matching cache update
        self._write_lock = threading.RLock()

        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _require(value: Any, name: str) -> str:
        """Return the normalized text of a required argument."""
        if not isinstance(value, str) or not normalize_text(value):
            raise InvalidInputError(f"{name} must be a non-empty string")
        return normalize_text(value)

    def _get_from_cache_or_ledger(self, key: str) -> Optional[str]:
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        with self._write_lock:
            try:
                value = self.gateway.get_state(key)
            except Exception as e:
                self.logger.error(f"Ledger read failed for key {key}: {e}")
                raise OperationError(f"Error reading key {key}", e) from e

            if value:
                self.cache.put(key, value)
                return value
        return None

    def _write_through(self, key: str, value: str, action: str) -> None:
        """Write the ledger and then the cache as one step under the write lock."""
        with self._write_lock:
            try:
                self.gateway.put_state(key, value)
            except Exception as e:
                self.logger.error(f"Error {action} asset {key}: {e}")
                raise OperationError(f"Error {action} asset {key}", e) from e

            self.cache.put(key, value)

    def init_ledger(self) -> None:
        """Hook invoked once when the hosting contract is instantiated."""
        self.logger.info("Contract initialized")

    def create_asset(
        self,
        asset_id: str,
        owner: str,
        asset_type: str,
        description: Optional[str],
        value: Union[float, int, str]
    ) -> None:
        """
        Create a new asset.

        Raises:
            InvalidInputError: if a required field is blank or value is invalid
            AssetExistsError: if the id is already known to cache or ledger
            OperationError: if the ledger write fails
        """
        asset_id = self._require(asset_id, "asset_id")
        owner = self._require(owner, "owner")
        asset_type = self._require(asset_type, "asset_type")

        try:
            asset = Asset(
                asset_id=asset_id,
                owner=owner,
                asset_type=asset_type,
                description=description,
                value=value,
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid fields for asset {asset_id}", e) from e

        if self._get_from_cache_or_ledger(asset_id):
            raise AssetExistsError(f"Asset {asset_id} already exists")

        self._write_through(asset_id, encode_asset(asset), "creating")
        self.logger.info(f"Asset {asset_id} created by {owner}")

    def query_asset(self, asset_id: str) -> str:
        """Return the encoded record of an asset."""
        asset_id = self._require(asset_id, "asset_id")

        encoded = self._get_from_cache_or_ledger(asset_id)
        if not encoded:
            raise AssetNotFoundError(f"Asset {asset_id} not found")
        return encoded

    def get_asset(self, asset_id: str) -> Asset:
        """Return the decoded record of an asset."""
        return decode_asset(self.query_asset(asset_id))

    def asset_exists(self, asset_id: str) -> bool:
        """Check if asset exists."""
        asset_id = self._require(asset_id, "asset_id")
        return bool(self._get_from_cache_or_ledger(asset_id))

    def transfer_asset(self, asset_id: str, new_owner: str) -> None:
        """
        Transfer an asset to a new owner.

        The ledger is written before the cache, under the write lock. The derived owner-listing key
        of the previous owner is invalidated; it is only resident if some
        caller stored one, so this is normally a no-op.
        """
        asset_id = self._require(asset_id, "asset_id")
        new_owner = self._require(new_owner, "new_owner")

        encoded = self._get_from_cache_or_ledger(asset_id)
        if not encoded:
            raise AssetNotFoundError(f"Asset {asset_id} does not exist")

        asset = decode_asset(encoded)
        old_owner = asset.owner
        asset.owner = new_owner

        self._write_through(asset_id, encode_asset(asset), "transferring")
        self.cache.invalidate(owner_index_key(old_owner))

        self.logger.info(f"Asset {asset_id} transferred from {old_owner} to {new_owner}")

    def create_confidential_details(
        self,
        asset_id: str,
        transient: Optional[Mapping[str, Union[bytes, str]]]
    ) -> None:
        """
        Store the confidential details attached to the invocation.

        The payload is read from the ``asset_properties`` entry of the
        transient map and written verbatim to the private collection.
        """
        asset_id = self._require(asset_id, "asset_id")

        payload = (transient or {}).get(TRANSIENT_PROPERTIES_KEY)
        if payload is None:
            raise PrivateDataError("Private data not found in transient map")
        if isinstance(payload, str):
            payload = payload.encode('utf-8')
        if not payload:
            raise PrivateDataError("Private data in transient map is empty")

        try:
            self.gateway.put_private_data(self.private_collection, asset_id, bytes(payload))
        except Exception as e:
            self.logger.error(f"Error storing private data for asset {asset_id}: {e}")
            raise PrivateDataError(f"Error storing private data for asset {asset_id}", e) from e

        self.logger.info(f"Private data for asset {asset_id} stored")

    def query_confidential_details(self, asset_id: str) -> bytes:
        """
        Read the confidential details of an asset.

        The calling organization is logged for audit. Access control is the
        gateway's collection policy; a rejection surfaces as PrivateDataError.
        """
        asset_id = self._require(asset_id, "asset_id")

        try:
            org_id = self.gateway.get_caller_org_id()
            self.logger.info(f"Private data access attempt by: {org_id}")
            data = self.gateway.get_private_data(self.private_collection, asset_id)
        except Exception as e:
            self.logger.error(f"Error reading private data for asset {asset_id}: {e}")
            raise PrivateDataError(f"Error reading private data for asset {asset_id}", e) from e

        if data is None:
            raise AssetNotFoundError(f"No private data for asset {asset_id}")
        return bytes(data)

    def get_asset_history(self, asset_id: str) -> str:
        """Return the ledger history of an asset as JSON text, oldest first."""
        asset_id = self._require(asset_id, "asset_id")

        try:
            entries = [
                entry.model_dump(mode='json')
                for entry in self.gateway.get_history(asset_id)
            ]
        except Exception as e:
            self.logger.error(f"Error getting history for asset {asset_id}: {e}")
            raise OperationError(f"Error getting asset history for {asset_id}", e) from e

        return json.dumps(entries)

    def get_registry_stats(self) -> Dict[str, Any]:
        """Get cache and collection information."""
        stats = self.cache.get_statistics()
        return {
            'private_collection': self.private_collection,
            'cache_info': {
                'entries': stats.cache_size,
                'capacity': stats.capacity,
                'hits': stats.hits,
                'misses': stats.misses,
                'evictions': stats.evictions,
                'invalidations': stats.invalidations,
                'hit_rate': stats.hit_rate,
            }
        }
