import os
import sys
from pathlib import Path

# Base directory (works in dev + PyInstaller)
if getattr(sys, "frozen", False):
    BASE_DIR = Path(sys.executable).parent
else:
    BASE_DIR = Path(__file__).resolve().parent.parent

BUNDLED_BIN_DIR = BASE_DIR / "bin"


def data_dir() -> Path:
    """Root for the database and logs, overridable via SCANNER_DATA_DIR."""
    return Path(os.environ.get("SCANNER_DATA_DIR", "Data"))


def logs_dir() -> Path:
    return data_dir() / "Logs"
