from __future__ import annotations

import base64
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from imprint.services.config_store import ConfigStore
from imprint.services.errors import WatermarkNotFound

logger = logging.getLogger(__name__)


def _mime_type(ext: str) -> str:
	if ext.lower() == ".svg":
		return "image/svg+xml"
	return f"image/{ext.lstrip('.').lower()}"


def _data_url(ext: str, content: bytes) -> str:
	return f"data:{_mime_type(ext)};base64,{base64.b64encode(content).decode('ascii')}"


class WatermarkStore:
	"""Watermark files in a managed directory, indexed by the config store."""

	def __init__(self, store: ConfigStore, directory: Path) -> None:
		self.store = store
		self.directory = Path(directory)

	def _new_id(self, taken) -> str:
		stamp = int(time.time() * 1000)
		while f"wm_{stamp}" in taken:
			stamp += 1
		return f"wm_{stamp}"

	def _find(self, config: Dict[str, Any], watermark_id: str) -> Optional[Dict[str, Any]]:
		for wm in config.get("watermarks") or []:
			if wm.get("id") == watermark_id:
				return wm
		return None

	def _register(self, filename: str, write) -> Dict[str, Any]:
		ext = Path(filename).suffix
		with self.store.edit() as config:
			wm_id = self._new_id({w.get("id") for w in config.get("watermarks") or []})
			entry = {"id": wm_id, "name": Path(filename).stem, "file": f"{wm_id}{ext}", "ext": ext}
			self.directory.mkdir(parents=True, exist_ok=True)
			dest = self.directory / entry["file"]
			write(dest)
			config.setdefault("watermarks", []).append(entry)
		logger.info(f"Imported watermark {wm_id} from {filename}")
		return {**entry, "data": _data_url(ext, dest.read_bytes())}

	def add_file(self, source: Path) -> Dict[str, Any]:
		source = Path(source)
		return self._register(source.name, lambda dest: shutil.copyfile(source, dest))

	def add_bytes(self, filename: str, content: bytes) -> Dict[str, Any]:
		return self._register(filename, lambda dest: dest.write_bytes(content))

	def list(self) -> List[Dict[str, Any]]:
		out = []
		for wm in self.store.load().get("watermarks") or []:
			path = self.directory / wm.get("file", "")
			if not path.is_file():
				logger.warning(f"Watermark file missing, skipping: {path}")
				continue
			out.append({**wm, "data": _data_url(wm.get("ext", ""), path.read_bytes())})
		return out

	def rename(self, watermark_id: str, name: str) -> None:
		with self.store.edit() as config:
			wm = self._find(config, watermark_id)
			if wm is None:
				raise WatermarkNotFound(watermark_id)
			wm["name"] = name

	def delete(self, watermark_id: str) -> None:
		with self.store.edit() as config:
			wm = self._find(config, watermark_id)
			if wm is None:
				raise WatermarkNotFound(watermark_id)
			path = self.directory / wm["file"]
			if path.exists():
				path.unlink()
			config["watermarks"] = [w for w in config.get("watermarks") or [] if w.get("id") != watermark_id]
			(config.get("watermarkPositions") or {}).pop(watermark_id, None)

	def load(self, watermark_id: str) -> Optional[Tuple[bytes, Dict[str, Dict[str, float]]]]:
		"""Content and placement map of a watermark, or None when it cannot be used."""
		config = self.store.load()
		wm = self._find(config, watermark_id)
		if wm is None:
			return None
		path = self.directory / wm["file"]
		if not path.is_file():
			logger.warning(f"Watermark {watermark_id} has no file at {path}")
			return None
		positions = (config.get("watermarkPositions") or {}).get(watermark_id) or {}
		return path.read_bytes(), positions
