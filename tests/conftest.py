"""
Shared test fixtures for the BSI core test suite.

Every test gets a fresh store backed by an in-memory persister, so
nothing touches the filesystem unless a test asks for it.
"""

import os
import sys

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "DEBUG"

from bsi.core.config import Settings
from bsi.main import Backend, create_backend
from bsi.services.persistence import MemoryPersister


@pytest.fixture
def test_settings() -> Settings:
    return Settings(STORAGE_BACKEND="memory")


@pytest.fixture
def persister() -> MemoryPersister:
    return MemoryPersister()


@pytest.fixture
async def backend(test_settings: Settings, persister: MemoryPersister) -> Backend:
    return await create_backend(test_settings, persister)


@pytest.fixture
async def member(backend: Backend):
    return await backend.register("Ada Member", "ada@example.com", "pw")


@pytest.fixture
async def strategist(backend: Backend):
    return await backend.register("Root Admin", "admin@futurepath.io", "pw")
