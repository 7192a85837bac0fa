from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from io import BytesIO
from typing import Any, Dict, List, Optional

import piexif
import piexif.helper
from PIL import Image, ImageCms, IptcImagePlugin

from imprint.services.tags import revive_datetime

logger = logging.getLogger(__name__)

# piexif IFD name -> (segment name, piexif.TAGS table)
_EXIF_IFDS = {
	"0th": ("ifd0", "Image"),
	"1st": ("ifd1", "Image"),
	"Exif": ("exif", "Exif"),
	"GPS": ("gps", "GPS"),
	"Interop": ("interop", "Interop"),
}
_XP_TAGS = {
	piexif.ImageIFD.XPTitle,
	piexif.ImageIFD.XPComment,
	piexif.ImageIFD.XPAuthor,
	piexif.ImageIFD.XPKeywords,
	piexif.ImageIFD.XPSubject,
}

IPTC_DATASETS = {
	5: "ObjectName",
	10: "Urgency",
	15: "Category",
	20: "SupplementalCategories",
	25: "Keywords",
	40: "SpecialInstructions",
	55: "DateCreated",
	60: "TimeCreated",
	62: "DigitalCreationDate",
	63: "DigitalCreationTime",
	65: "OriginatingProgram",
	70: "ProgramVersion",
	80: "Byline",
	85: "BylineTitle",
	90: "City",
	92: "Sublocation",
	95: "State",
	100: "CountryCode",
	101: "Country",
	103: "OriginalTransmissionReference",
	105: "Headline",
	110: "Credit",
	115: "Source",
	116: "CopyrightNotice",
	118: "Contact",
	120: "Caption",
	122: "Writer",
}

_RENDERING_INTENTS = {
	0: "Perceptual",
	1: "Media-Relative Colorimetric",
	2: "Saturation",
	3: "ICC-Absolute Colorimetric",
}
_JFIF_UNITS = {0: "None", 1: "inches", 2: "cm"}

_RDF = "{http://www.w3.org/1999/02/22-rdf-syntax-ns#}"


def _text(value: bytes) -> str:
	return value.decode("utf-8", errors="replace").rstrip("\x00").strip()


def _number(num: int, den: int) -> Any:
	if not den:
		return None
	if num % den == 0:
		return num // den
	return round(num / den, 6)


def _rational(value: Any) -> Any:
	if isinstance(value, tuple) and len(value) == 2 and all(isinstance(v, int) for v in value):
		return _number(*value)
	if isinstance(value, tuple):
		return [_rational(v) for v in value]
	return value


def _exif_value(tag: int, name: str, tag_type: int, value: Any) -> Any:
	if tag in _XP_TAGS:
		raw = bytes(value)
		return raw.decode("utf-16le", errors="replace").rstrip("\x00")
	if name == "UserComment" and isinstance(value, bytes):
		try:
			return piexif.helper.UserComment.load(value)
		except ValueError:
			return value
	if tag_type == piexif.TYPES.Ascii and isinstance(value, bytes):
		text = _text(value)
		return revive_datetime(text) if ("Date" in name or "Time" in name) else text
	if tag_type in (piexif.TYPES.Rational, piexif.TYPES.SRational):
		return _rational(value)
	if tag_type == piexif.TYPES.Undefined and isinstance(value, bytes) and len(value) <= 16:
		if all(32 <= b < 127 for b in value):
			return value.decode("ascii")
	return value


def _exif_segments(exif: bytes) -> Dict[str, Any]:
	loaded = piexif.load(exif)
	out: Dict[str, Any] = {}
	for ifd, (segment, table) in _EXIF_IFDS.items():
		entries = loaded.get(ifd) or {}
		parsed: Dict[str, Any] = {}
		for tag, value in entries.items():
			info = piexif.TAGS[table].get(tag)
			if info is None:
				name, tag_type = f"Tag0x{tag:04X}", piexif.TYPES.Undefined
			else:
				name, tag_type = info["name"], info["type"]
			parsed[name] = _exif_value(tag, name, tag_type, value)
		if parsed:
			out[segment] = parsed
	if loaded.get("thumbnail"):
		out["thumbnail"] = loaded["thumbnail"]
	return out


def _iptc_segment(img: Image.Image) -> Dict[str, Any]:
	info = IptcImagePlugin.getiptcinfo(img)
	if not info:
		return {}
	out: Dict[str, Any] = {}
	for (record, dataset), value in info.items():
		name = IPTC_DATASETS.get(dataset) if record == 2 else None
		name = name or f"IPTC_{record}_{dataset}"
		if isinstance(value, list):
			out[name] = [_text(v) for v in value]
		else:
			out[name] = _text(value)
	return out


def _local(tag: str) -> str:
	return tag.rsplit("}", 1)[-1]


def _xmp_element(el: ET.Element) -> Any:
	container = next((c for c in el if _local(c.tag) in ("Bag", "Seq", "Alt")), None)
	if container is not None:
		return [(li.text or "").strip() for li in container if (li.text or "").strip()]
	children = list(el)
	if children:
		return {_local(c.tag): _xmp_element(c) for c in children}
	resource = el.get(f"{_RDF}resource")
	if resource:
		return resource
	return (el.text or "").strip()


def _xmp_segment(xmp: Any) -> Dict[str, Any]:
	if isinstance(xmp, str):
		xmp = xmp.encode("utf-8")
	root = ET.fromstring(xmp.strip(b"\x00 \r\n\t"))
	out: Dict[str, Any] = {}
	for desc in root.iter(f"{_RDF}Description"):
		for attr, value in desc.attrib.items():
			if attr.startswith(_RDF):
				continue
			out.setdefault(_local(attr), revive_datetime(value))
		for child in desc:
			value = _xmp_element(child)
			if isinstance(value, str):
				value = revive_datetime(value)
			out.setdefault(_local(child.tag), value)
	return out


def _jfif_segment(info: Dict[str, Any]) -> Dict[str, Any]:
	if "jfif" not in info:
		return {}
	out: Dict[str, Any] = {}
	version = info.get("jfif_version")
	if version:
		out["JFIFVersion"] = f"{version[0]}.{version[1]:02d}"
	if "jfif_unit" in info:
		out["ResolutionUnit"] = _JFIF_UNITS.get(info["jfif_unit"], info["jfif_unit"])
	density = info.get("jfif_density")
	if density:
		out["XResolution"], out["YResolution"] = density
	return out


def _icc_segment(icc: bytes) -> Dict[str, Any]:
	profile = ImageCms.ImageCmsProfile(BytesIO(icc)).profile
	return {
		"ProfileDescription": profile.profile_description,
		"ProfileCopyright": profile.copyright,
		"DeviceManufacturer": profile.manufacturer,
		"DeviceModel": profile.model,
		"ProfileClass": profile.device_class,
		"ColorSpaceData": profile.xcolor_space,
		"ProfileConnectionSpace": profile.connection_space,
		"ProfileVersion": profile.version,
		"ProfileDateTime": profile.creation_date,
		"RenderingIntent": _RENDERING_INTENTS.get(profile.rendering_intent, profile.rendering_intent),
	}


def parse_segments(data: bytes, segments: Optional[List[str]] = None) -> Dict[str, Any]:
	"""Segment-keyed metadata of an encoded image (ifd0, exif, gps, iptc, xmp, jfif, icc, ...)."""
	wanted = set(segments or ("exif", "iptc", "xmp", "jfif", "icc"))
	out: Dict[str, Any] = {}
	with Image.open(BytesIO(data)) as img:
		info = dict(img.info)
		if "exif" in wanted and info.get("exif"):
			out.update(_exif_segments(info["exif"]))
		if "iptc" in wanted:
			iptc = _iptc_segment(img)
			if iptc:
				out["iptc"] = iptc
	xmp = info.get("xmp") or info.get("XML:com.adobe.xmp")
	if "xmp" in wanted and xmp:
		out["xmp"] = _xmp_segment(xmp)
	if "jfif" in wanted:
		jfif = _jfif_segment(info)
		if jfif:
			out["jfif"] = jfif
	if "icc" in wanted and info.get("icc_profile"):
		out["icc"] = _icc_segment(info["icc_profile"])
	return out
