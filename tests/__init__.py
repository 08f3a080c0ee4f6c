"""Test package initialisation for FitTrack."""

from pathlib import Path
import os
import sys
import tempfile

# Ensure the repository root is importable when tests run from an isolated
# working directory. Pytest can change the current directory during collection
# which makes top-level modules like ``tracking_session`` inaccessible unless
# the project root is explicitly added to ``sys.path``.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Qt widgets and painters run headless, and the global logger writes into a
# throwaway directory instead of the user's home.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("FITTRACK_LOG_DIR", tempfile.mkdtemp(prefix="fittrack-test-logs-"))
