"""
Registry of record-store base handles.

Handles are created lazily, once per base id, and reused for the process
lifetime. The registry is created in the app lifespan and handed to
repositories explicitly; nothing here is module-global.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional
import logging
import threading

import httpx

from partner_portal.core.config import Settings
from partner_portal.core.errors import ConfigurationError
from partner_portal.datastore.client import AirtableBase, RecordBase

logger = logging.getLogger(__name__)

BaseFactory = Callable[[str], RecordBase]


class RecordStoreRegistry:
    """Lazy, initialize-once-per-key map of base id -> base handle."""

    def __init__(self, factory: BaseFactory) -> None:
        self._factory = factory
        self._bases: Dict[str, RecordBase] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, base_id: str) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(base_id)
            if lock is None:
                lock = self._key_locks[base_id] = threading.Lock()
            return lock

    def base(self, base_id: str) -> RecordBase:
        if not base_id:
            raise ConfigurationError("Record store base id is not configured")
        cached = self._bases.get(base_id)
        if cached is not None:
            return cached
        with self._lock_for(base_id):
            cached = self._bases.get(base_id)
            if cached is not None:
                return cached
            try:
                handle = self._factory(base_id)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"Failed to initialize record store base {base_id[:7]}...: {e}")
                raise ConfigurationError(f"Failed to initialize record store base: {e}") from e
            self._bases[base_id] = handle
            logger.info(f"Opened record store base {base_id[:7]}...")
            return handle

    def open_bases(self) -> List[str]:
        return list(self._bases.keys())

    def close(self) -> None:
        for base_id, handle in list(self._bases.items()):
            close = getattr(handle, "close", None)
            if close is not None:
                try:
                    close()
                except Exception as e:
                    logger.warning(f"Error closing base {base_id[:7]}...: {e}")
        self._bases.clear()


def airtable_factory(settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> BaseFactory:
    """Factory building AirtableBase handles from settings."""

    def build(base_id: str) -> RecordBase:
        api_key = settings.airtable_api_key.strip()
        if not api_key:
            raise ConfigurationError("AIRTABLE_API_KEY is not defined in environment variables")
        return AirtableBase(
            base_id,
            api_key,
            api_url=settings.airtable_api_url,
            timeout=settings.airtable_timeout_seconds,
            transport=transport,
        )

    return build


def create_registry(settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> RecordStoreRegistry:
    return RecordStoreRegistry(airtable_factory(settings, transport))
