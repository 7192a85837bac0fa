"""Tests for the metadata field builder and EXIF writer."""

import piexif

from conftest import sample_exif

from imprint.config import POWERED_BY
from imprint.services.fields import CustomField, FieldSet, build_exif, effective_fields, write_exif


def test_customs_are_appended_to_description():
	fields = FieldSet(description="A", custom=(CustomField("x", "1"), CustomField("y", "2")))
	assert build_exif(fields)["IFD0"]["XPComment"] == "A | x=1; y=2"


def test_customs_alone_become_the_comment():
	fields = FieldSet(custom=(CustomField("x", "1"), CustomField("", "skipped"), CustomField("z", "")))
	assert build_exif(fields)["IFD0"]["XPComment"] == "x=1"


def test_field_mapping():
	fields = FieldSet(
		title="T", author="Ann", copyright="(c) Ann", software="Imprint", keywords="a;b", comment="C"
	)
	ifd0 = build_exif(fields)["IFD0"]
	assert ifd0 == {
		"ImageDescription": "T",
		"XPTitle": "T",
		"Artist": "Ann",
		"XPAuthor": "Ann",
		"Copyright": "(c) Ann",
		"Software": "Imprint",
		"XPKeywords": "a;b",
		"XPSubject": "C",
	}


def test_empty_values_are_not_written():
	assert build_exif(FieldSet(title="", author=None)) == {"IFD0": {}}


def test_has_content():
	assert not FieldSet().has_content()
	assert not FieldSet(title="   ").has_content()
	assert FieldSet(author="Ann").has_content()
	assert FieldSet(custom=(CustomField("k", "v"),)).has_content()


def test_from_dict():
	fields = FieldSet.from_dict({"title": "T", "custom": [{"key": "k", "value": "v"}], "unknown": 1})
	assert fields.title == "T"
	assert fields.custom == (CustomField("k", "v"),)


def test_image_fields_win_over_defaults():
	fields = effective_fields(FieldSet(title="Mine"), {"defaults": {"title": "Default", "author": "Ann"}})
	assert fields.title == "Mine"
	assert fields.author == "Ann"


def test_title_is_never_taken_from_defaults():
	defaults = {"title": "Default", "copyright": "(c) Ann", "keywords": "k", "comment": "c", "description": "d", "software": "s"}
	fields = effective_fields(FieldSet(), {"defaults": defaults})
	assert fields.title is None
	assert (fields.copyright, fields.keywords, fields.comment, fields.description, fields.software) == (
		"(c) Ann",
		"k",
		"c",
		"d",
		"s",
	)


def test_attribution_only_when_enabled():
	on = effective_fields(FieldSet(), {"poweredBy": True})
	off = effective_fields(FieldSet(), {})
	assert on.custom == (CustomField("powered_by", POWERED_BY),)
	assert off.custom == ()


def test_write_exif_encodes_tags():
	data = write_exif(None, {"IFD0": {"Artist": "Ann", "XPTitle": "Title"}})
	loaded = piexif.load(data)
	assert loaded["0th"][piexif.ImageIFD.Artist] == b"Ann"
	xp = bytes(loaded["0th"][piexif.ImageIFD.XPTitle])
	assert xp.decode("utf-16le").rstrip("\x00") == "Title"


def test_write_exif_keeps_existing_tags():
	data = write_exif(sample_exif(), {"IFD0": {"Artist": "Ann"}})
	loaded = piexif.load(data)
	assert loaded["0th"][piexif.ImageIFD.Make] == b"Canon"
	assert loaded["0th"][piexif.ImageIFD.Artist] == b"Ann"
	assert loaded["Exif"][piexif.ExifIFD.FNumber] == (28, 10)
