"""Shared test fixtures."""

import struct
from io import BytesIO

import piexif
import pytest
from PIL import Image, ImageCms

from imprint.services.config_store import ConfigStore
from imprint.services.watermarks import WatermarkStore


def srgb_profile() -> bytes:
	return ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()


def sample_exif(description: str = "Sunset over the bay") -> bytes:
	return piexif.dump(
		{
			"0th": {
				piexif.ImageIFD.Make: b"Canon",
				piexif.ImageIFD.Model: b"EOS R5",
				piexif.ImageIFD.ImageDescription: description.encode("ascii"),
			},
			"Exif": {
				piexif.ExifIFD.FNumber: (28, 10),
				piexif.ExifIFD.DateTimeOriginal: b"2024:05:01 18:30:00",
			},
			"GPS": {piexif.GPSIFD.GPSLatitudeRef: b"N"},
			"Interop": {},
			"1st": {},
			"thumbnail": None,
		}
	)


XMP = (
	b'<x:xmpmeta xmlns:x="adobe:ns:meta/"><rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">'
	b'<rdf:Description xmlns:xmp="http://ns.adobe.com/xap/1.0/" xmlns:dc="http://purl.org/dc/elements/1.1/"'
	b' xmp:CreateDate="2024-05-01T18:30:00">'
	b"<dc:subject><rdf:Bag><rdf:li>sea</rdf:li><rdf:li>sunset</rdf:li></rdf:Bag></dc:subject>"
	b"</rdf:Description></rdf:RDF></x:xmpmeta>"
)


def with_segment(jpeg: bytes, marker: int, payload: bytes) -> bytes:
	"""Insert an APPn segment right after SOI, or after APP0 when there is one."""
	pos = 2
	if jpeg[2:4] == b"\xff\xe0":
		pos = 4 + struct.unpack(">H", jpeg[4:6])[0]
	segment = struct.pack(">BBH", 0xFF, marker, len(payload) + 2) + payload
	return jpeg[:pos] + segment + jpeg[pos:]


def xmp_app1(xmp: bytes = XMP) -> bytes:
	return b"http://ns.adobe.com/xap/1.0/\x00" + xmp


def iptc_app13(city: bytes = b"Paris") -> bytes:
	# Photoshop IRB 0x0404 holding one IPTC-IIM dataset, 2:90 City
	iim = b"\x1c\x02\x5a" + struct.pack(">H", len(city)) + city
	if len(iim) % 2:
		iim += b"\x00"
	return b"Photoshop 3.0\x00" + b"8BIM\x04\x04\x00\x00" + struct.pack(">I", len(iim)) + iim


def c2pa_app11() -> bytes:
	label = b"c2pa\x00"
	jumd = struct.pack(">I", 8 + 16 + 1 + len(label)) + b"jumd" + bytes(16) + b"\x03" + label
	jumb = struct.pack(">I", 8 + len(jumd)) + b"jumb" + jumd
	return b"JP\x00\x01\x00\x00\x00\x01" + jumb


def make_image(
	width: int = 64,
	height: int = 48,
	fmt: str = "JPEG",
	color=(200, 40, 40),
	mode: str = "RGB",
	**params,
) -> bytes:
	"""Encoded solid-color image; extra params go straight to Pillow's save()."""
	img = Image.new(mode, (width, height), color)
	out = BytesIO()
	img.save(out, format=fmt, **params)
	return out.getvalue()


@pytest.fixture
def store(tmp_path) -> ConfigStore:
	return ConfigStore(tmp_path / "config.json")


@pytest.fixture
def watermarks(store, tmp_path) -> WatermarkStore:
	return WatermarkStore(store, tmp_path / "watermarks")


@pytest.fixture
def jpeg_with_metadata() -> bytes:
	return make_image(fmt="JPEG", exif=sample_exif(), icc_profile=srgb_profile())


@pytest.fixture
def plain_png() -> bytes:
	return make_image(fmt="PNG", color=(10, 120, 200, 255), mode="RGBA")


@pytest.fixture
def watermark_png() -> bytes:
	return make_image(20, 10, fmt="PNG", color=(0, 0, 255, 255), mode="RGBA")


@pytest.fixture
def jpeg_with_everything() -> bytes:
	"""EXIF, ICC, XMP, IPTC and a C2PA manifest box in one JPEG."""
	data = make_image(fmt="JPEG", exif=sample_exif(), icc_profile=srgb_profile())
	data = with_segment(data, 0xEB, c2pa_app11())
	data = with_segment(data, 0xED, iptc_app13())
	return with_segment(data, 0xE1, xmp_app1())
