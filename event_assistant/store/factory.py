#!/usr/bin/env python3
"""
Data Store Factory

Factory function to create the domain store based on configuration.
"""

from __future__ import annotations

import logging
from typing import Any

from .memory_store import InMemoryDataStore
from .repository import DataStore
from .sqlite_store import SQLiteDataStore

logger = logging.getLogger(__name__)


def create_data_store(store_config: dict[str, Any]) -> DataStore:
    """Create the domain data store described by the ``data_store`` section."""
    store_type = store_config.get("type", "sqlite")

    if store_type == "memory":
        logger.info("Using in-memory data store (data lost on restart)")
        return InMemoryDataStore()
    if store_type == "sqlite":
        db_path = store_config.get("path", "events.db")
        logger.info("Using SQLite data store at %s", db_path)
        return SQLiteDataStore(db_path)

    raise ValueError(f"Unknown data_store.type '{store_type}' (expected 'sqlite' or 'memory')")
