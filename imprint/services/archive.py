from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional

from imprint.config import DEFAULT_ZIP_FOLDER
from imprint.services.config_store import ConfigStore
from imprint.services.errors import ArchiveError, OutputPathError

logger = logging.getLogger(__name__)

_UNSAFE_FOLDER_CHARS = re.compile(r"[^a-zA-Z0-9_\- ]")


@dataclass(frozen=True)
class ProcessedFile:
	name: str
	data: bytes


def sanitize_folder_name(name: Optional[str]) -> str:
	return _UNSAFE_FOLDER_CHARS.sub("_", name or DEFAULT_ZIP_FOLDER)


def build_archive(files: Iterable[ProcessedFile], folder: Optional[str] = None) -> bytes:
	"""Zip the files in memory, optionally under a single top-level folder."""
	prefix = f"{sanitize_folder_name(folder)}/" if folder is not None else ""
	buf = BytesIO()
	try:
		with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
			for f in files:
				zf.writestr(prefix + f.name, f.data)
	except (OSError, ValueError, zipfile.BadZipFile) as e:
		raise ArchiveError(f"Could not build archive: {e}") from e
	return buf.getvalue()


def resolve_output_path(path: str, root: Path) -> Path:
	"""``path`` resolved under ``root``; relative paths are taken from ``root``."""
	root = Path(root).resolve()
	target = (root / path).resolve()
	if target.suffix.lower() != ".zip":
		raise OutputPathError(f"Archive name must end in .zip: {path}")
	if root not in target.parents:
		raise OutputPathError(f"Archive path is outside {root}: {path}")
	return target


def save_archive(data: bytes, path: str, store: ConfigStore, root: Path) -> str:
	"""Write archive bytes under ``root`` and remember the name for next time."""
	path = resolve_output_path(path, root)
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_bytes(data)
	name = path.stem
	store.set_last_zip_name(name)
	logger.info(f"Saved archive to {path}")
	return name
