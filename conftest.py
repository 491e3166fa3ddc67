"""Root conftest — ensure the app directory is on ``sys.path``."""

import sys
from pathlib import Path

_APP_DIR = str(Path(__file__).resolve().parent)
if _APP_DIR not in sys.path:
    sys.path.insert(0, _APP_DIR)

from integration.logger import setup_logging  # noqa: E402

# Bind structlog to the real stderr before any CliRunner swaps it out.
setup_logging("WARNING")
