"""Shared pytest fixtures."""

import shutil
import tempfile

import pytest


@pytest.fixture()
def socket_dir():
    """Short-lived directory for channel sockets (kept short for the AF_UNIX path limit)."""
    path = tempfile.mkdtemp(prefix="ipclog-")
    yield path
    shutil.rmtree(path, ignore_errors=True)
