"""Pytest hooks and fixtures."""

import socket

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "requires_unix_socket: needs AF_UNIX stream sockets (skipped where unavailable)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_unix_socket tests on platforms without AF_UNIX."""
    if hasattr(socket, "AF_UNIX"):
        return
    skip = pytest.mark.skip(reason="AF_UNIX sockets not available")
    for item in items:
        if "requires_unix_socket" in item.keywords:
            item.add_marker(skip)
