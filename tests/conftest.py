import os
from datetime import date

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from gantt_scheduler.models import DependencyLink, Project, Task  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    """Provide a shared QApplication for tests that instantiate widgets."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture
def chain_project() -> Project:
    """Three tasks of 3, 2 and 4 days linked finish-to-start."""
    tasks = [
        Task("A", date(2024, 1, 1), date(2024, 1, 3), name="Design"),
        Task("B", date(2024, 1, 4), date(2024, 1, 5), name="Build"),
        Task("C", date(2024, 1, 6), date(2024, 1, 9), name="Test"),
    ]
    links = [
        DependencyLink("L1", "A", "B"),
        DependencyLink("L2", "B", "C"),
    ]
    return Project(tasks=tasks, links=links)
