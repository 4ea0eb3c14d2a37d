"""
Configure pytest environment.

Provides in-memory connections so that model tests run without a database
server.
"""
import logging

import pytest

from arangomap import Connection, ODMConfig

logging.getLogger("arangomap").setLevel(logging.DEBUG)


@pytest.fixture
def memory_config():
    """Configuration selecting the in-memory backend."""
    return ODMConfig(storage_type="memory", db_name="arangomap_test")


@pytest.fixture
def db(memory_config):
    """A fresh connection per test, so every test starts with empty collections."""
    return Connection(memory_config)
