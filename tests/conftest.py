"""
Pytest and unittest configuration for the viewer context menu tests.

Adds project src/ to sys.path so tests can import from core, utils and gui.
Run tests from project root with:
  - pytest
  - python -m unittest discover -s tests -p "test_*.py"
"""

import sys
import os

import pytest

# Add src to path so that "from core.xxx" and "from utils.xxx" work
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_src_dir = os.path.join(_project_root, "src")
if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

# Qt tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


def pytest_configure(config):
    """Register the marker for tests that need a QApplication."""
    config.addinivalue_line("markers", "qt: mark test as requiring QApplication (PySide6)")


@pytest.fixture(scope="session")
def qapp():
    """Provide QApplication for tests that need Qt widgets. One per test session."""
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        pytest.skip("PySide6 not installed")
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    return app
