from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import piexif

from imprint.config import POWERED_BY

TEXT_FIELDS = ("title", "author", "copyright", "software", "description", "keywords", "comment")
# title is per-image and never taken from the batch defaults
DEFAULTED_FIELDS = TEXT_FIELDS[1:]

# XP* tags are UTF-16LE byte arrays, the others are ASCII
_ASCII_TAGS = {
	"ImageDescription": piexif.ImageIFD.ImageDescription,
	"Artist": piexif.ImageIFD.Artist,
	"Copyright": piexif.ImageIFD.Copyright,
	"Software": piexif.ImageIFD.Software,
}
_XP_TAGS = {
	"XPTitle": piexif.ImageIFD.XPTitle,
	"XPAuthor": piexif.ImageIFD.XPAuthor,
	"XPComment": piexif.ImageIFD.XPComment,
	"XPKeywords": piexif.ImageIFD.XPKeywords,
	"XPSubject": piexif.ImageIFD.XPSubject,
}


@dataclass(frozen=True)
class CustomField:
	key: str
	value: str


@dataclass(frozen=True)
class FieldSet:
	title: Optional[str] = None
	author: Optional[str] = None
	copyright: Optional[str] = None
	software: Optional[str] = None
	description: Optional[str] = None
	keywords: Optional[str] = None
	comment: Optional[str] = None
	custom: Tuple[CustomField, ...] = field(default_factory=tuple)

	@classmethod
	def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FieldSet":
		data = data or {}
		custom = tuple(
			CustomField(str(c.get("key") or ""), str(c.get("value") or ""))
			for c in data.get("custom") or []
		)
		return cls(**{k: data.get(k) for k in TEXT_FIELDS}, custom=custom)

	def has_content(self) -> bool:
		if self.custom:
			return True
		return any(getattr(self, k) and str(getattr(self, k)).strip() for k in TEXT_FIELDS)

	def with_defaults(self, defaults: "FieldSet") -> "FieldSet":
		filled = {k: getattr(self, k) or getattr(defaults, k) for k in DEFAULTED_FIELDS}
		return replace(self, **filled)

	def with_custom(self, key: str, value: str) -> "FieldSet":
		return replace(self, custom=self.custom + (CustomField(key, value),))


def effective_fields(image_fields: FieldSet, settings: Mapping[str, Any]) -> FieldSet:
	"""Per-image fields over batch defaults, plus the attribution pair when enabled."""
	merged = image_fields.with_defaults(FieldSet.from_dict(settings.get("defaults")))
	if settings.get("poweredBy"):
		merged = merged.with_custom("powered_by", POWERED_BY)
	return merged


def build_exif(fields: FieldSet) -> Dict[str, Dict[str, str]]:
	ifd0: Dict[str, str] = {}
	if fields.title:
		ifd0["ImageDescription"] = fields.title
		ifd0["XPTitle"] = fields.title
	if fields.author:
		ifd0["Artist"] = fields.author
		ifd0["XPAuthor"] = fields.author
	if fields.copyright:
		ifd0["Copyright"] = fields.copyright
	if fields.software:
		ifd0["Software"] = fields.software
	if fields.description:
		ifd0["XPComment"] = fields.description
	if fields.keywords:
		ifd0["XPKeywords"] = fields.keywords
	if fields.comment:
		ifd0["XPSubject"] = fields.comment
	customs = [c for c in fields.custom if c.key and c.value]
	if customs:
		custom_str = "; ".join(f"{c.key}={c.value}" for c in customs)
		ifd0["XPComment"] = f"{ifd0['XPComment']} | {custom_str}" if ifd0.get("XPComment") else custom_str
	return {"IFD0": ifd0}


def _encode_ifd0(ifd0: Mapping[str, str]) -> Dict[int, bytes]:
	out: Dict[int, bytes] = {}
	for name, value in ifd0.items():
		if name in _ASCII_TAGS:
			out[_ASCII_TAGS[name]] = value.encode("utf-8")
		elif name in _XP_TAGS:
			out[_XP_TAGS[name]] = value.encode("utf-16le") + b"\x00\x00"
		else:
			raise KeyError(f"Unsupported IFD0 field: {name}")
	return out


def write_exif(existing: Optional[bytes], container: Mapping[str, Mapping[str, str]]) -> bytes:
	"""EXIF block with the container's IFD0 fields written over ``existing`` (if any)."""
	if existing:
		exif_dict = piexif.load(existing)
	else:
		exif_dict = {"0th": {}, "Exif": {}, "GPS": {}, "Interop": {}, "1st": {}, "thumbnail": None}
	exif_dict.setdefault("0th", {}).update(_encode_ifd0(container.get("IFD0", {})))
	return piexif.dump(exif_dict)
