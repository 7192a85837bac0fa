from __future__ import annotations

import copy
import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from imprint.config import DEFAULT_ZIP_NAME, MAX_SAVED_VALUES

logger = logging.getLogger(__name__)


def default_config() -> Dict[str, Any]:
	return {"lastZipName": DEFAULT_ZIP_NAME, "watermarks": [], "watermarkPositions": {}}


class ConfigStore:
	"""The persisted JSON document shared by every handler.

	All mutations go through :meth:`edit`, which holds the store lock for the
	whole read-modify-write cycle.
	"""

	def __init__(self, path: Path) -> None:
		self.path = Path(path)
		self._lock = threading.RLock()

	def load(self) -> Dict[str, Any]:
		with self._lock:
			if not self.path.exists():
				return default_config()
			try:
				with self.path.open("r", encoding="utf-8") as f:
					data = json.load(f)
			except (OSError, ValueError) as e:
				logger.warning(f"Could not read {self.path}, using defaults: {e}")
				return default_config()
			if not isinstance(data, dict):
				return default_config()
			return data

	def save(self, config: Dict[str, Any]) -> None:
		with self._lock:
			try:
				self.path.parent.mkdir(parents=True, exist_ok=True)
				with self.path.open("w", encoding="utf-8") as f:
					json.dump(config, f, indent=2, ensure_ascii=False)
			except OSError as e:
				logger.error(f"Could not write {self.path}: {e}")

	@contextmanager
	def edit(self) -> Iterator[Dict[str, Any]]:
		with self._lock:
			config = self.load()
			yield config
			self.save(config)

	# last archive name

	def set_last_zip_name(self, name: str) -> None:
		with self.edit() as config:
			config["lastZipName"] = name

	# settings

	def get_settings(self) -> Dict[str, Any]:
		settings = copy.deepcopy(self.load().get("settings") or {})
		# attribution is on unless explicitly switched off
		if settings.get("poweredBy") is None:
			settings["poweredBy"] = True
		return settings

	def save_settings(self, settings: Dict[str, Any]) -> None:
		with self.edit() as config:
			config["settings"] = settings

	# watermark placements

	def get_positions(self, watermark_id: str) -> Dict[str, Dict[str, float]]:
		return (self.load().get("watermarkPositions") or {}).get(watermark_id) or {}

	def set_positions(self, watermark_id: str, positions: Dict[str, Dict[str, float]]) -> None:
		with self.edit() as config:
			config.setdefault("watermarkPositions", {})[watermark_id] = positions

	# remembered field values

	def get_saved_values(self) -> Dict[str, List[str]]:
		return self.load().get("savedValues") or {}

	def add_saved_value(self, field_key: str, value: str) -> Optional[List[str]]:
		trimmed = (value or "").strip()
		if not trimmed:
			return None
		with self.edit() as config:
			values = config.setdefault("savedValues", {}).setdefault(field_key, [])
			if trimmed not in values:
				values.insert(0, trimmed)
				del values[MAX_SAVED_VALUES:]
			return list(values)

	def delete_saved_value(self, field_key: str, value: str) -> Optional[List[str]]:
		with self._lock:
			config = self.load()
			saved = config.get("savedValues") or {}
			if field_key not in saved:
				return None
			saved[field_key] = [v for v in saved[field_key] if v != value]
			self.save(config)
			return list(saved[field_key])
