"""Tests for archive assembly and saving."""

import zipfile
from io import BytesIO

import pytest

from imprint.services.archive import (
	ProcessedFile,
	build_archive,
	resolve_output_path,
	sanitize_folder_name,
	save_archive,
)
from imprint.services.errors import OutputPathError


def test_sanitize_folder_name():
	assert sanitize_folder_name("Holiday 2024") == "Holiday 2024"
	assert sanitize_folder_name("a/b\\c:d") == "a_b_c_d"
	assert sanitize_folder_name("") == "images"
	assert sanitize_folder_name(None) == "images"


def test_build_archive_flat_and_foldered():
	files = [ProcessedFile("a.jpg", b"A"), ProcessedFile("b.jpg", b"B")]
	with zipfile.ZipFile(BytesIO(build_archive(files))) as zf:
		assert zf.namelist() == ["a.jpg", "b.jpg"]
		assert zf.getinfo("a.jpg").compress_type == zipfile.ZIP_DEFLATED
	with zipfile.ZipFile(BytesIO(build_archive(files, "out"))) as zf:
		assert zf.namelist() == ["out/a.jpg", "out/b.jpg"]
		assert zf.read("out/b.jpg") == b"B"


def test_save_archive_remembers_name(store, tmp_path):
	name = save_archive(b"PK", "exports/holiday.zip", store, tmp_path)
	assert name == "holiday"
	assert (tmp_path / "exports" / "holiday.zip").read_bytes() == b"PK"
	assert store.load()["lastZipName"] == "holiday"


def test_absolute_path_inside_root_is_allowed(tmp_path):
	assert resolve_output_path(str(tmp_path / "a.ZIP"), tmp_path) == (tmp_path / "a.ZIP").resolve()


@pytest.mark.parametrize(
	"path",
	["../escape.zip", "exports/../../escape.zip", "/etc/cron.d/evil.zip", "notes.txt", "archive", "."],
)
def test_paths_outside_root_or_not_zip_are_rejected(path, store, tmp_path):
	root = tmp_path / "archives"
	with pytest.raises(OutputPathError):
		save_archive(b"PK", path, store, root)
	assert not (tmp_path / "escape.zip").exists()
	assert store.load()["lastZipName"] == "processed-images"
