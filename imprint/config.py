from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env")

DATA_DIR = Path(os.environ.get("IMPRINT_DATA_DIR", Path.home() / ".imprint"))
CONFIG_PATH = DATA_DIR / "config.json"
WATERMARKS_DIR = DATA_DIR / "watermarks"
OUTPUT_DIR = Path(os.environ.get("IMPRINT_OUTPUT_DIR", DATA_DIR / "archives"))

EXIFTOOL_PATH = os.environ.get("IMPRINT_EXIFTOOL", "exiftool")
LOG_LEVEL = os.environ.get("IMPRINT_LOG_LEVEL", "INFO").upper()

DEFAULT_ZIP_NAME = "processed-images"
DEFAULT_ZIP_FOLDER = "images"
DEFAULT_OUTPUT_FORMAT = "jpeg"
DEFAULT_QUALITY = 100
MAX_SAVED_VALUES = 20

POWERED_BY = "Imprint · https://github.com/Blake-and-Watt/Imprint"
