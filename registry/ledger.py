"""
Asset Registry - Ledger Gateway

This module defines the narrow interface the registry uses to reach the
authoritative ledger: point reads and writes, the per-key history stream, a
named confidential side-store and the identity of the calling organization.
Consensus, commit, identity verification and private-data transport all live
behind this interface.

MemoryLedger is an in-process implementation used for embedding and tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Set
from uuid import uuid4

from .schema import HistoryEntry


DEFAULT_ORGANIZATION = "Org1MSP"


class CollectionAccessError(PermissionError):
    """Raised when an organization is not a member of a private collection."""
    pass


def check_collection_access(
    policy: Dict[str, Set[str]],
    organization: str,
    collection: str
) -> None:
    """Raise CollectionAccessError if the policy excludes the organization."""
    allowed = policy.get(collection)
    if allowed is not None and organization not in allowed:
        raise CollectionAccessError(
            f"Organization {organization} is not a member of collection {collection}"
        )


class LedgerGateway(ABC):
    """Abstract base class for ledger gateways."""

    @abstractmethod
    def get_state(self, key: str) -> Optional[str]:
        """Read the current value for a key, or None if absent."""
        pass

    @abstractmethod
    def put_state(self, key: str, value: str) -> None:
        """Write a value for a key and append it to the key's history."""
        pass

    @abstractmethod
    def get_history(self, key: str) -> Iterator[HistoryEntry]:
        """Stream the modifications of a key, oldest first. Single pass."""
        pass

    @abstractmethod
    def get_private_data(self, collection: str, key: str) -> Optional[bytes]:
        """Read a value from a named private collection, or None if absent."""
        pass

    @abstractmethod
    def put_private_data(self, collection: str, key: str, value: bytes) -> None:
        """Write a value into a named private collection."""
        pass

    @abstractmethod
    def get_caller_org_id(self) -> str:
        """Identify the organization that submitted the current invocation."""
        pass


class MemoryLedger(LedgerGateway):
    """
    In-memory ledger gateway.

    World state, history and private collections are held in dictionaries
    guarded by one lock. An optional collection policy maps collection names
    to the organizations allowed to read and write them; collections without
    a policy are open to every caller.
    """

    def __init__(
        self,
        organization: str = DEFAULT_ORGANIZATION,
        collection_policy: Optional[Dict[str, Iterable[str]]] = None
    ):
        self.organization = organization
        self.collection_policy = {
            name: set(orgs) for name, orgs in (collection_policy or {}).items()
        }

        self._state: Dict[str, str] = {}
        self._history: Dict[str, List[HistoryEntry]] = defaultdict(list)
        self._private: Dict[str, Dict[str, bytes]] = defaultdict(dict)
        self._lock = threading.RLock()

        self.logger = logging.getLogger(__name__)

    def get_state(self, key: str) -> Optional[str]:
        with self._lock:
            return self._state.get(key)

    def put_state(self, key: str, value: str) -> None:
        with self._lock:
            self._state[key] = value
            self._history[key].append(HistoryEntry(tx_id=uuid4().hex, value=value))
            self.logger.debug(f"Ledger write for key: {key}")

    def get_history(self, key: str) -> Iterator[HistoryEntry]:
        with self._lock:
            entries = list(self._history.get(key, ()))
        return iter(entries)

    def get_private_data(self, collection: str, key: str) -> Optional[bytes]:
        with self._lock:
            check_collection_access(self.collection_policy, self.organization, collection)
            return self._private[collection].get(key)

    def put_private_data(self, collection: str, key: str, value: bytes) -> None:
        with self._lock:
            check_collection_access(self.collection_policy, self.organization, collection)
            self._private[collection][key] = bytes(value)

    def get_caller_org_id(self) -> str:
        return self.organization
