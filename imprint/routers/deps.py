from __future__ import annotations

from pathlib import Path

from fastapi import Request

from imprint.services.config_store import ConfigStore
from imprint.services.metadata import MetadataReader
from imprint.services.watermarks import WatermarkStore


def get_store(request: Request) -> ConfigStore:
	return request.app.state.store


def get_watermarks(request: Request) -> WatermarkStore:
	return request.app.state.watermarks


def get_reader(request: Request) -> MetadataReader:
	return request.app.state.reader


def get_output_dir(request: Request) -> Path:
	return request.app.state.output_dir
