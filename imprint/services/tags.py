from __future__ import annotations

import base64
import binascii
import enum
import json
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional

FILE_INFO = "File Info"

_FILE_INFO_KEYS = {
	"filename", "filesize", "filetype", "filetypeextension", "mimetype", "checksum",
	"sourcefile", "rawheader", "rawheaderhex", "filemodifydate", "fileaccessdate",
	"filecreatetime", "filesize_bytes",
}
_IMAGE_KEYS = {
	"imagewidth", "imageheight", "imagesize", "megapixels", "colorspace",
	"colorcomponents", "bitspersample", "encodingprocess", "ycbcrsubsampling",
	"pixelsperunitx", "pixelsperunity", "pixelunits", "photometricinterpretation",
	"samplesperpixel", "rowsperstrip", "stripoffsets", "stripbytecounts",
	"orientation", "xresolution", "yresolution", "resolutionunit",
}
_CAMERA_KEYS = {"make", "model", "lensmodel", "lensinfo", "lensid", "lensspec", "cameraid"}
_CAMERA_SETTINGS_KEYS = {
	"exposuretime", "fnumber", "iso", "isospeedratings", "exposureprogram", "meteringmode",
	"flash", "focallength", "shutterspeedvalue", "aperturevalue", "brightnessvalue",
	"exposurecompensation", "whitebalance", "digitalzoomratio", "scenecapturetype",
	"focallengthin35mmformat", "lightsource", "contrast", "saturation", "sharpness",
	"gaincontrol", "subjectdistance", "maxaperturevalue", "exposuremode",
}
_CREATOR_KEYS = {
	"artist", "copyright", "creator", "rights", "title", "description", "keywords",
	"caption", "subject", "headline", "imagedescription", "usercomment", "comment",
	"xptitle", "xpcomment", "xpauthor", "xpkeywords", "xpsubject",
	"captionabstract", "creditline", "source", "writer", "byline", "category", "objectname",
}
_PROVENANCE_PREFIXES = ("c2pa", "claim", "actions", "item", "jumd", "jumb")
_PROVENANCE_FRAGMENTS = ("c2pa", "synthi", "digitalsource")
_PROVENANCE_KEYS = {
	"instanceid", "signatureuri", "alg", "signature", "exclusions", "hashdata",
	"pad", "generatorname", "generatorversion",
}
_IPTC_KEYS = {"city", "province", "state", "country", "countrycode", "urgency", "copyrightnotice", "instructions"}
_ICC_KEYS = {
	"colorprofile", "profiledescription", "profilecopyright", "profileclass",
	"profileconnectionspace", "renderingintent",
}


def infer_group(key: str) -> str:
	"""Display group for a tag name. Total: every key lands in exactly one group."""
	k = key.lower()
	if k in _FILE_INFO_KEYS:
		return FILE_INFO
	if k.startswith("jfif"):
		return "JFIF"
	if k in _IMAGE_KEYS:
		return "Image"
	if k.startswith("gps"):
		return "GPS"
	if k in _CAMERA_KEYS:
		return "Camera"
	if k in _CAMERA_SETTINGS_KEYS:
		return "Camera Settings"
	if "date" in k or "time" in k:
		return "Dates & Time"
	if k in _CREATOR_KEYS:
		return "Creator & Description"
	if k.startswith(_PROVENANCE_PREFIXES) or any(f in k for f in _PROVENANCE_FRAGMENTS) or k in _PROVENANCE_KEYS:
		return "C2PA / Provenance"
	if k.startswith(("xmp", "xap")) or k == "rating":
		return "XMP"
	if k.startswith("iptc") or k in _IPTC_KEYS:
		return "IPTC"
	if k.startswith("icc") or "profilename" in k or "colorspace" in k or k in _ICC_KEYS:
		return "ICC Profile"
	if k.startswith("exif"):
		return "EXIF"
	return "EXIF / Other"


# exiftool style "YYYY:MM:DD HH:MM:SS[.fff][+HH:MM|Z]"
_EXIF_DATETIME = re.compile(
	r"^(\d{4})[:-](\d{2})[:-](\d{2})[ T](\d{2}):(\d{2}):(\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})?$"
)
_WRAPPED_BINARY_PREFIX = "base64:"


def revive_datetime(value: str) -> Any:
	"""A datetime for EXIF-formatted date strings, otherwise the string itself."""
	m = _EXIF_DATETIME.match(value.strip())
	if not m:
		return value
	year, month, day, hour, minute, second, frac, tz = m.groups()
	iso = f"{year}-{month}-{day}T{hour}:{minute}:{second}{frac or ''}{'+00:00' if tz == 'Z' else tz or ''}"
	try:
		return datetime.fromisoformat(iso)
	except ValueError:
		return value


class ValueKind(enum.Enum):
	EMPTY = "empty"
	BINARY = "binary"
	WRAPPED_BINARY = "wrapped_binary"
	DATETIME = "datetime"
	SEQUENCE = "sequence"
	MAPPING = "mapping"
	SCALAR = "scalar"
	OBJECT = "object"


def value_kind(value: Any) -> ValueKind:
	if value is None:
		return ValueKind.EMPTY
	if isinstance(value, (bytes, bytearray, memoryview)):
		return ValueKind.BINARY
	if isinstance(value, str):
		return ValueKind.WRAPPED_BINARY if value.startswith(_WRAPPED_BINARY_PREFIX) else ValueKind.SCALAR
	if isinstance(value, (datetime, date, time)):
		return ValueKind.DATETIME
	if isinstance(value, (list, tuple)):
		return ValueKind.SEQUENCE
	if isinstance(value, dict):
		return ValueKind.MAPPING
	if isinstance(value, (int, float, bool)):
		return ValueKind.SCALAR
	return ValueKind.OBJECT


def _binary(value) -> str:
	size = len(value)
	return f"(Binary data {size} bytes)" if size else "(Empty)"


def _wrapped_binary(value: str) -> str:
	try:
		payload = base64.b64decode(value[len(_WRAPPED_BINARY_PREFIX):], validate=True)
	except (binascii.Error, ValueError):
		return value
	return _binary(payload)


def _datetime(value) -> str:
	try:
		return value.isoformat()
	except (TypeError, ValueError):
		return str(value)


def _sequence(value) -> str:
	parts = [to_display(v) for v in value]
	return ", ".join(p for p in parts if p is not None)


def _mapping(value: Dict[str, Any]) -> str:
	return json.dumps(value, default=str, ensure_ascii=False)


def _object(value: Any) -> str:
	text = str(value)
	if text != object.__repr__(value):
		return text
	try:
		return json.dumps(vars(value), default=str, ensure_ascii=False)
	except TypeError:
		return "(Object)"


_CONVERTERS: Dict[ValueKind, Callable[[Any], Optional[str]]] = {
	ValueKind.EMPTY: lambda _: None,
	ValueKind.BINARY: _binary,
	ValueKind.WRAPPED_BINARY: _wrapped_binary,
	ValueKind.DATETIME: _datetime,
	ValueKind.SEQUENCE: _sequence,
	ValueKind.MAPPING: _mapping,
	ValueKind.SCALAR: str,
	ValueKind.OBJECT: _object,
}


def to_display(value: Any) -> Optional[str]:
	return _CONVERTERS[value_kind(value)](value)


@dataclass(frozen=True)
class RawTag:
	"""A tag as a tier reads it; ``group`` is None when only the key is known."""

	key: str
	value: Any
	group: Optional[str] = None


@dataclass(frozen=True)
class MetadataTag:
	key: str
	group: str
	value: str


class TagCollector:
	"""Groups, filters and sorts tags into the display schema."""

	def __init__(self, dedupe: bool = False) -> None:
		self.dedupe = dedupe
		self._groups: Dict[str, List[MetadataTag]] = {}

	def add(self, key: str, value: Any, group: Optional[str] = None) -> None:
		display = to_display(value)
		if not display or display == "undefined":
			return
		group = group or infer_group(key)
		rows = self._groups.setdefault(group, [])
		if self.dedupe and any(r.key == key for r in rows):
			return
		rows.append(MetadataTag(key=key, group=group, value=display))

	def extend(self, tags: List[RawTag]) -> None:
		for tag in tags:
			self.add(tag.key, tag.value, tag.group)

	def groups(self) -> Dict[str, List[MetadataTag]]:
		return {g: sorted(rows, key=lambda r: r.key) for g, rows in self._groups.items()}

	def as_dict(self) -> Dict[str, List[Dict[str, str]]]:
		return {g: [{"key": r.key, "value": r.value} for r in rows] for g, rows in self.groups().items()}
