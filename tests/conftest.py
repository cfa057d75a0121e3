"""
Pytest configuration and shared fixtures for certanchor tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

# Import fixture modules
_common = importlib.import_module("fixtures.common")
_anchoring = importlib.import_module("fixtures.anchoring_fixtures")

# Extract factory functions
make_credential_fields = _common.make_credential_fields
make_credential_batch = _common.make_credential_batch
make_leaves = _common.make_leaves

make_service = _anchoring.make_service
make_anchored_batch = _anchoring.make_anchored_batch


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def credential_fields():
    """Provide default raw credential fields."""
    return make_credential_fields()


@pytest.fixture
def leaves():
    """Provide five distinct leaves."""
    return make_leaves(5)


@pytest.fixture
def anchored_batch():
    """Provide (store, ledger, credentials) for an anchored batch of five."""
    return make_anchored_batch(count=5)


@pytest.fixture(autouse=True)
def _isolated_default_config(monkeypatch):
    """Keep CERTANCHOR_* variables from the host out of every test."""
    import os
    from core.config import set_default_config

    for key in list(os.environ):
        if key.startswith("CERTANCHOR_"):
            monkeypatch.delenv(key, raising=False)
    set_default_config(None)
    yield
    set_default_config(None)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


# =============================================================================
# Test Helpers (available to all tests via fixtures)
# =============================================================================

@pytest.fixture
def assert_check_passed():
    """Helper to assert a specific check passed in a report or check list."""
    def _assert(result, check_id: str):
        checks = result if isinstance(result, list) else result.checks
        matching = [c for c in checks if c.check_id == check_id]
        assert len(matching) == 1, f"Expected check '{check_id}' not found in {[c.check_id for c in checks]}"
        assert matching[0].ok, f"Check '{check_id}' failed: {matching[0].message}"
    return _assert


@pytest.fixture
def assert_check_failed():
    """Helper to assert a specific check failed in a report or check list."""
    def _assert(result, check_id: str):
        checks = result if isinstance(result, list) else result.checks
        matching = [c for c in checks if c.check_id == check_id]
        assert len(matching) == 1, f"Expected check '{check_id}' not found in {[c.check_id for c in checks]}"
        assert not matching[0].ok, f"Check '{check_id}' unexpectedly passed"
    return _assert
