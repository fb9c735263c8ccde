"""Shared test fixtures for TaskFlow tests."""

import sys
from pathlib import Path

import pytest

# Ensure the repository root (pkg/, taskflow_server.py) is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.taskflow.controller import Controller
from pkg.taskflow.store import JobStore


@pytest.fixture
def store(tmp_path):
    """An initialized store on a throwaway database."""
    s = JobStore(str(tmp_path / "taskflow.db"))
    s.initialize()
    return s


@pytest.fixture
def controller(tmp_path):
    """A started controller on a throwaway database."""
    c = Controller(JobStore(str(tmp_path / "taskflow.db")))
    c.start()
    return c
