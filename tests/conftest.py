"""
Pytest and unittest configuration for the measurement engine tests.

Adds project src/ to sys.path so tests can import from core, tools and utils.
Run tests from project root with:
  - pytest
  - python -m unittest discover -s tests -p "test_*.py"
  - python tests/run_tests.py
"""

import sys
import os

import pytest

# Add src to path so that "from core.xxx" and "from utils.xxx" work
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_src_dir = os.path.join(_project_root, "src")
if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)


def pytest_configure(config):
    config.addinivalue_line("markers", "qt: mark test as requiring a Qt core application (PySide6)")


@pytest.fixture(scope="session")
def qapp():
    """Provide one QCoreApplication per test session for signal-based tests."""
    from PySide6.QtCore import QCoreApplication
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
    return app
