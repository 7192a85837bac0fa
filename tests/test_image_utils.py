"""Tests for ratio classification, placement math and formatting helpers."""

import pytest

from imprint.services.image_utils import (
	RATIOS,
	clamp_quality,
	detect_ratio,
	format_bytes,
	header_hex,
	placement_box,
	png_compress_level,
	round_half_up,
)


@pytest.mark.parametrize(
	"width,height,expected",
	[
		(1000, 1000, "1:1"),
		(1920, 1080, "16:9"),
		(900, 1200, "3:4"),
		(1080, 1920, "9:16"),
		(2560, 1080, "21:9"),
		(1200, 1500, "4:5"),
	],
)
def test_detect_ratio(width, height, expected):
	assert detect_ratio(width, height) == expected


def test_detect_ratio_is_total():
	for w, h in [(1, 5000), (5000, 1), (333, 777)]:
		assert detect_ratio(w, h) in RATIOS


def test_round_half_up():
	assert round_half_up(2.5) == 3
	assert round_half_up(0.5) == 1
	assert round_half_up(-0.5) == 0


def test_clamp_quality():
	assert clamp_quality(None) == 100
	assert clamp_quality(0) == 100
	assert clamp_quality(150) == 100
	assert clamp_quality(-5) == 1
	assert clamp_quality(80) == 80


def test_placement_box():
	assert placement_box({"x": 0.5, "y": 0.25, "w": 0.25, "h": 0.5}, 200, 100) == (100, 25, 50, 50)


def test_placement_box_never_collapses():
	_, _, w, h = placement_box({"x": 0, "y": 0, "w": 0, "h": 0.001}, 100, 100)
	assert (w, h) == (1, 1)


def test_png_compress_level():
	assert png_compress_level(100) == 0
	assert png_compress_level(80) == 3
	assert png_compress_level(44) == 9
	assert png_compress_level(1) == 9


def test_format_bytes():
	assert format_bytes(0) == "0 B"
	assert format_bytes(512) == "512 B"
	assert format_bytes(1536) == "1.5 KB"
	assert format_bytes(2 * 1024 * 1024) == "2.00 MB"


def test_header_hex():
	assert header_hex(b"\xff\xd8\xff\xe0") == "FF D8 FF E0"
	assert len(header_hex(bytes(100)).split(" ")) == 64
