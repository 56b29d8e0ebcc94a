"""Pytest bootstrap and shared fixtures."""

from pathlib import Path
import sys

import pytest

# Ensure project root is on sys.path so `import tutorhub` works without installing
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from fake_backend import ADMIN, STUDENT, TUTOR, FakeBackend, build_provider, create_account  # noqa: E402

from tutorhub.core.latch import LatchRegistry  # noqa: E402
from tutorhub.core.query_cache import QueryCache  # noqa: E402


@pytest.fixture
def provider():
    """Identity provider with one admin, one tutor and one student account."""
    provider = build_provider()
    create_account(provider, ADMIN, "Ada Admin")
    create_account(provider, TUTOR, "Tia Tutor")
    create_account(provider, STUDENT, "Sam Student")
    return provider


@pytest.fixture
def backend(provider):
    backend = FakeBackend(provider)
    backend.add_user(ADMIN, role="admin", name="Ada Admin")
    backend.add_user(TUTOR, role="tutor", name="Tia Tutor")
    backend.add_user(STUDENT, role="student", name="Sam Student")
    return backend


@pytest.fixture
def http(backend):
    return backend.http_client()


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def latches():
    return LatchRegistry()
