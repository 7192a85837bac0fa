from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import struct
import tempfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

import exiftool
from exiftool.exceptions import ExifToolException
from PIL import Image, IptcImagePlugin

from imprint.config import EXIFTOOL_PATH
from imprint.services.errors import ExtractionError
from imprint.services.image_utils import format_bytes, header_hex
from imprint.services.segments import parse_segments
from imprint.services.tags import FILE_INFO, RawTag, TagCollector, infer_group, revive_datetime

logger = logging.getLogger(__name__)

SEGMENT_GROUPS = {
	"ifd0": "Image",
	"ifd1": "Image",
	"exif": "EXIF / Camera",
	"gps": "GPS",
	"iptc": "IPTC",
	"xmp": "XMP",
	"jfif": "JFIF",
	"jfxx": "JFIF",
	"icc": "ICC Profile",
}

_EXIFTOOL_SKIP = {"SourceFile", "ExifToolVersion", "Error", "Warning", "errors", "warnings"}
_INJECTED_KEYS = {"FileName", "FileSize"}
_NEEDS_EXIFTOOL = "Yes (install exiftool to decode)"

# jumb superbox, then its jumd description box: size, type, 16-byte uuid, toggles, label
_JUMBF_C2PA = re.compile(rb"jumb.{4}jumd.{17}c2pa", re.DOTALL)

# Pillow mode -> (bit depth, colour space)
_MODE_INFO = {
	"1": (1, "b-w"),
	"L": (8, "b-w"),
	"LA": (8, "b-w"),
	"P": (8, "srgb"),
	"RGB": (8, "srgb"),
	"RGBA": (8, "srgb"),
	"CMYK": (8, "cmyk"),
	"YCbCr": (8, "srgb"),
	"LAB": (8, "lab"),
	"I;16": (16, "grey16"),
	"I": (32, "b-w"),
	"F": (32, "b-w"),
}


@dataclass(frozen=True)
class ImageSource:
	name: str
	data: bytes


@dataclass
class ImageSummary:
	format: Optional[str] = None
	width: Optional[int] = None
	height: Optional[int] = None
	raw_size: int = 0
	has_exif: bool = False
	has_iptc: bool = False
	has_xmp: bool = False
	has_c2pa: bool = False
	has_profile: bool = False


class Extractor(Protocol):
	name: str
	dedupe: bool

	def available(self) -> bool: ...

	def extract(self, source: ImageSource) -> List[RawTag]: ...


def _jpeg_app11(data: bytes) -> bytes:
	"""Concatenated APP11 payloads of a JPEG, up to the start of scan."""
	out = []
	pos = 2
	while pos + 4 <= len(data) and data[pos] == 0xFF:
		marker = data[pos + 1]
		if marker in (0xD9, 0xDA):
			break
		length = struct.unpack(">H", data[pos + 2 : pos + 4])[0]
		if marker == 0xEB:
			out.append(data[pos + 4 : pos + 2 + length])
		pos += 2 + length
	return b"".join(out)


def _png_chunk_types(data: bytes) -> Iterator[bytes]:
	pos = 8
	while pos + 8 <= len(data):
		length, kind = struct.unpack(">I4s", data[pos : pos + 8])
		yield kind
		if kind == b"IEND":
			break
		pos += 12 + length


def has_c2pa(data: bytes) -> bool:
	"""True when the file carries a C2PA manifest store.

	JPEG: a JUMBF box labelled c2pa in APP11. PNG: a caBX chunk. Other
	containers: a c2pa-labelled JUMBF description box anywhere in the file.
	"""
	if data[:2] == b"\xff\xd8":
		return bool(_JUMBF_C2PA.search(_jpeg_app11(data)))
	if data[:8] == b"\x89PNG\r\n\x1a\n":
		return b"caBX" in _png_chunk_types(data)
	return bool(_JUMBF_C2PA.search(data))


def summarize(data: bytes) -> ImageSummary:
	summary = ImageSummary(raw_size=len(data), has_c2pa=has_c2pa(data))
	with Image.open(BytesIO(data)) as img:
		summary.format = (img.format or "").lower() or None
		summary.width, summary.height = img.size
		summary.has_exif = bool(img.info.get("exif"))
		summary.has_xmp = bool(img.info.get("xmp") or img.info.get("XML:com.adobe.xmp"))
		summary.has_profile = bool(img.info.get("icc_profile"))
		summary.has_iptc = bool(IptcImagePlugin.getiptcinfo(img))
	return summary


class ExifToolExtractor:
	"""Tier 1: every tag exiftool knows, read from a temporary copy of the image."""

	name = "exiftool"
	dedupe = False

	def __init__(self, executable: str = EXIFTOOL_PATH) -> None:
		self.executable = executable

	def available(self) -> bool:
		return shutil.which(self.executable) is not None

	def read_tags(self, path: Path) -> Dict[str, Any]:
		# -b turns binary values into "base64:..." payloads instead of placeholders
		with exiftool.ExifToolHelper(executable=self.executable, common_args=["-b"]) as et:
			return et.get_metadata(str(path))[0]

	def extract(self, source: ImageSource) -> List[RawTag]:
		suffix = Path(source.name).suffix or ".jpg"
		fd, tmp = tempfile.mkstemp(prefix="imprint_", suffix=suffix)
		try:
			with os.fdopen(fd, "wb") as f:
				f.write(source.data)
			try:
				raw = self.read_tags(Path(tmp))
			except (ExifToolException, OSError, ValueError, IndexError) as e:
				raise ExtractionError(f"exiftool could not read {source.name}: {e}") from e
		finally:
			try:
				os.unlink(tmp)
			except OSError:
				logger.warning(f"Could not remove temporary file {tmp}")

		tags = []
		for key, value in raw.items():
			if key in _EXIFTOOL_SKIP or key in _INJECTED_KEYS:
				continue
			if isinstance(value, str) and ("Date" in key or "Time" in key):
				value = revive_datetime(value)
			tags.append(RawTag(key=key, value=value))
		return tags


class SegmentExtractor:
	"""Tier 2: pure parsing of the EXIF, IPTC, XMP, JFIF and ICC segments."""

	name = "segments"
	dedupe = True

	def available(self) -> bool:
		return True

	def extract(self, source: ImageSource) -> List[RawTag]:
		try:
			parsed = parse_segments(source.data, ["exif", "iptc", "xmp", "jfif", "icc"])
		except Exception as e:
			raise ExtractionError(f"Could not parse metadata segments of {source.name}: {e}") from e

		tags = []
		for segment, content in parsed.items():
			group = SEGMENT_GROUPS.get(segment.lower()) or infer_group(segment)
			if isinstance(content, dict):
				tags.extend(RawTag(key=k, value=v, group=group) for k, v in content.items())
			else:
				tags.append(RawTag(key=segment, value=content, group=group))
		return tags


class BasicExtractor:
	"""Tier 3: what the decoder alone reports."""

	name = "basic"
	dedupe = False

	def available(self) -> bool:
		return True

	def extract(self, source: ImageSource) -> List[RawTag]:
		try:
			with Image.open(BytesIO(source.data)) as img:
				info = dict(img.info)
				mode = img.mode
				fmt = img.format
				width, height = img.size
				bands = len(img.getbands())
				orientation = img.getexif().get(0x0112)
				iptc = IptcImagePlugin.getiptcinfo(img)
		except Exception as e:
			raise ExtractionError(f"Could not decode {source.name}: {e}") from e

		depth, space = _MODE_INFO.get(mode, (None, None))
		dpi = info.get("dpi")
		has_alpha = "A" in mode or "transparency" in info
		tags = [
			RawTag("Format", fmt.upper() if fmt else None, "Image"),
			RawTag("Width", width, "Image"),
			RawTag("Height", height, "Image"),
			RawTag("Channels", bands, "Image"),
			RawTag("BitDepth", depth, "Image"),
			RawTag("ColorSpace", space, "Image"),
			RawTag("Density", f"{round(dpi[0])} dpi" if dpi else None, "Image"),
			RawTag("HasAlpha", "Yes" if has_alpha else "No", "Image"),
			RawTag("Orientation", orientation, "Image"),
			RawTag("EmbeddedProfile", "Yes" if info.get("icc_profile") else "No", "ICC Profile"),
		]
		if info.get("exif"):
			tags.append(RawTag("EXIFPresent", _NEEDS_EXIFTOOL, "EXIF"))
		if iptc:
			tags.append(RawTag("IPTCPresent", _NEEDS_EXIFTOOL, "IPTC"))
		if info.get("xmp") or info.get("XML:com.adobe.xmp"):
			tags.append(RawTag("XMPPresent", _NEEDS_EXIFTOOL, "XMP"))
		return tags


def default_extractors() -> List[Extractor]:
	return [ExifToolExtractor(), SegmentExtractor(), BasicExtractor()]


def file_info_tags(source: ImageSource) -> List[RawTag]:
	return [
		RawTag("FileName", source.name, FILE_INFO),
		RawTag("FileSize", format_bytes(len(source.data)), FILE_INFO),
		RawTag("Checksum", hashlib.md5(source.data).hexdigest(), FILE_INFO),
		RawTag("RawHeaderHex", header_hex(source.data), FILE_INFO),
	]


class MetadataReader:
	"""Runs the extractors in order and keeps the first one that succeeds."""

	def __init__(self, extractors: Optional[Sequence[Extractor]] = None) -> None:
		self.extractors = list(extractors) if extractors is not None else default_extractors()

	def read_tags(self, source: ImageSource) -> Dict[str, List[Dict[str, str]]]:
		errors = []
		for extractor in self.extractors:
			if not extractor.available():
				continue
			try:
				tags = extractor.extract(source)
			except ExtractionError as e:
				logger.warning(f"{extractor.name} failed for {source.name}: {e}")
				errors.append(str(e))
				continue
			collector = TagCollector(dedupe=extractor.dedupe)
			collector.extend(file_info_tags(source))
			collector.extend(tags)
			return collector.as_dict()
		raise ExtractionError("; ".join(errors) or f"No metadata reader available for {source.name}")

	def read(self, source: ImageSource) -> Dict[str, Any]:
		try:
			summary = summarize(source.data)
		except Exception as e:
			logger.warning(f"Could not decode {source.name} for summary: {e}")
			summary = ImageSummary(raw_size=len(source.data), has_c2pa=has_c2pa(source.data))
		try:
			groups = self.read_tags(source)
		except ExtractionError as e:
			return {"name": source.name, "error": str(e)}
		return {
			"name": source.name,
			"format": summary.format,
			"width": summary.width,
			"height": summary.height,
			"rawSize": summary.raw_size,
			"hasExif": summary.has_exif,
			"hasIptc": summary.has_iptc,
			"hasXmp": summary.has_xmp,
			"hasC2pa": summary.has_c2pa,
			"hasProfile": summary.has_profile,
			"groups": groups,
		}

	def read_batch(self, sources: Sequence[ImageSource]) -> List[Dict[str, Any]]:
		return [self.read(s) for s in sources]
