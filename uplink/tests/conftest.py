"""
Shared fixtures.

Every test runs against a fresh InMemoryBoundary and its own
ResourceRegistry; teardown fails the test if any handle or foreign
allocation outlived it.
"""

from __future__ import annotations

import pytest

import uplink
from uplink.boundary.memory import InMemoryBoundary
from uplink.registry import ResourceRegistry


@pytest.fixture
def boundary():
    """In-memory satellite installed as the process default."""
    memory = InMemoryBoundary()
    uplink.set_boundary(memory)
    yield memory
    uplink.set_boundary(None)
    assert memory.universe_is_empty(), memory.live_allocations()


@pytest.fixture
def registry():
    """Per-test registry, checked for leaked leases on teardown."""
    leases = ResourceRegistry()
    yield leases
    assert leases.outstanding() == []


@pytest.fixture
def access(boundary, registry):
    with uplink.parse_access(
        boundary.issue_access(), boundary=boundary, registry=registry,
    ) as opened:
        yield opened


@pytest.fixture
def project(access):
    with access.open_project() as opened:
        yield opened


@pytest.fixture
def bucket(project):
    """Name of an existing, empty bucket."""
    project.create_bucket("photos")
    return "photos"
