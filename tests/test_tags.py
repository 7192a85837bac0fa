"""Tests for tag grouping, value conversion and collection."""

from datetime import datetime

import pytest

from imprint.services.tags import (
	FILE_INFO,
	RawTag,
	TagCollector,
	ValueKind,
	infer_group,
	revive_datetime,
	to_display,
	value_kind,
)


@pytest.mark.parametrize(
	"key,group",
	[
		("FileSize", FILE_INFO),
		("JFIFVersion", "JFIF"),
		("ImageWidth", "Image"),
		("GPSLatitude", "GPS"),
		("Make", "Camera"),
		("FNumber", "Camera Settings"),
		("DateTimeOriginal", "Dates & Time"),
		("Artist", "Creator & Description"),
		("c2pa_manifest", "C2PA / Provenance"),
		("DigitalSourceType", "C2PA / Provenance"),
		("XMPToolkit", "XMP"),
		("Rating", "XMP"),
		("City", "IPTC"),
		("ICCProfileName", "ICC Profile"),
		("ProfileDescription", "ICC Profile"),
		("ExifVersion", "EXIF"),
		("UnknownXyz123", "EXIF / Other"),
	],
)
def test_infer_group_positive(key, group):
	assert infer_group(key) == group


@pytest.mark.parametrize(
	"key,group",
	[
		("FileSizeLimit", FILE_INFO),
		("MyJFIF", "JFIF"),
		("ImageWidthHint", "Image"),
		("LastGPS", "GPS"),
		("Maker", "Camera"),
		("FNumberX", "Camera Settings"),
		("Artistic", "Creator & Description"),
		("PreviewXMP", "XMP"),
		("Citywide", "IPTC"),
		("ExposureIndexExif", "EXIF"),
	],
)
def test_infer_group_negative(key, group):
	assert infer_group(key) != group


def test_infer_group_is_case_insensitive():
	assert infer_group("gpsaltitude") == "GPS"
	assert infer_group("FNUMBER") == "Camera Settings"


def test_infer_group_priority():
	# "date" rule is checked before the creator keys
	assert infer_group("GPSDateStamp") == "GPS"
	assert infer_group("ModifyDate") == "Dates & Time"


def test_revive_datetime():
	assert revive_datetime("2024:05:01 18:30:00") == datetime(2024, 5, 1, 18, 30, 0)
	assert revive_datetime("2024:05:01 18:30:00Z").utcoffset().total_seconds() == 0
	assert revive_datetime("not a date") == "not a date"
	assert revive_datetime("2024:13:45 99:99:99") == "2024:13:45 99:99:99"


@pytest.mark.parametrize(
	"value,kind",
	[
		(None, ValueKind.EMPTY),
		(b"\x00\x01", ValueKind.BINARY),
		("base64:AAEC", ValueKind.WRAPPED_BINARY),
		(datetime(2024, 1, 1), ValueKind.DATETIME),
		([1, 2], ValueKind.SEQUENCE),
		({"a": 1}, ValueKind.MAPPING),
		(3.5, ValueKind.SCALAR),
		("text", ValueKind.SCALAR),
		(object(), ValueKind.OBJECT),
	],
)
def test_value_kind(value, kind):
	assert value_kind(value) is kind


def test_to_display():
	assert to_display(None) is None
	assert to_display(b"\x00" * 12) == "(Binary data 12 bytes)"
	assert to_display(b"") == "(Empty)"
	assert to_display("base64:AAEC") == "(Binary data 3 bytes)"
	assert to_display("base64:!!") == "base64:!!"
	assert to_display(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
	assert to_display([1, None, "b"]) == "1, b"
	assert to_display({"a": 1}) == '{"a": 1}'
	assert to_display(42) == "42"


def test_to_display_plain_object():
	class Thing:
		def __init__(self):
			self.size = 3

	assert to_display(Thing()) == '{"size": 3}'


def test_collector_drops_empty_and_sorts():
	collector = TagCollector()
	collector.extend(
		[
			RawTag("Model", "EOS R5"),
			RawTag("Make", "Canon"),
			RawTag("LensInfo", None),
			RawTag("Software", ""),
			RawTag("Artist", "undefined"),
		]
	)
	assert collector.as_dict() == {"Camera": [{"key": "Make", "value": "Canon"}, {"key": "Model", "value": "EOS R5"}]}


def test_collector_explicit_group_wins():
	collector = TagCollector()
	collector.add("Make", "Canon", group="Image")
	assert list(collector.groups()) == ["Image"]


def test_collector_dedupe_keeps_first():
	collector = TagCollector(dedupe=True)
	collector.add("Make", "Canon", group="Image")
	collector.add("Make", "Nikon", group="Image")
	assert collector.as_dict() == {"Image": [{"key": "Make", "value": "Canon"}]}

	plain = TagCollector()
	plain.add("Make", "Canon", group="Image")
	plain.add("Make", "Nikon", group="Image")
	assert len(plain.as_dict()["Image"]) == 2
