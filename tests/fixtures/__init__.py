"""
Test fixtures package for certanchor tests.

This package provides factory functions for creating test objects.
Organized into layers:
- common.py: Credential and leaf factories shared by all modules
- anchoring_fixtures.py: In-memory store/ledger wiring and anchored batches

Usage:
    from fixtures import make_credential_fields, make_anchored_batch

    def test_something():
        store, ledger, credentials = make_anchored_batch(count=3)
"""

from .common import (
    make_credential_fields,
    make_credential_batch,
    make_leaf,
    make_leaves,
)

from .anchoring_fixtures import (
    make_retry_policy,
    make_service,
    make_engine,
    make_anchored_batch,
)

__all__ = [
    "make_credential_fields",
    "make_credential_batch",
    "make_leaf",
    "make_leaves",
    "make_retry_policy",
    "make_service",
    "make_engine",
    "make_anchored_batch",
]
