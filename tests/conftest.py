import pytest
from PyQt6.QtCore import QCoreApplication


@pytest.fixture(scope="session")
def qapp() -> QCoreApplication:
    # QTimer needs an application instance; no event loop is ever run
    return QCoreApplication.instance() or QCoreApplication([])
