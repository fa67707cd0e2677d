import os
import sys
import tempfile

# Keep test runs from writing ./logs
os.environ.setdefault("SMARTLOCK_LOG_DIR", tempfile.gettempdir())


def pytest_configure():
    # Ensure the repo root is importable as top-level for `smartlock.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    if root not in sys.path:
        sys.path.insert(0, root)
