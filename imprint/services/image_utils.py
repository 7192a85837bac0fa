from __future__ import annotations

import math
from typing import Dict, Mapping, Optional, Tuple

# canonical aspect ratios, in matching priority order
RATIOS: Dict[str, Tuple[int, int]] = {
	"1:1": (1, 1),
	"3:4": (3, 4),
	"4:3": (4, 3),
	"2:3": (2, 3),
	"3:2": (3, 2),
	"9:16": (9, 16),
	"16:9": (16, 9),
	"5:4": (5, 4),
	"4:5": (4, 5),
	"21:9": (21, 9),
}


def round_half_up(x: float) -> int:
	return int(math.floor(x + 0.5))


def clamp_quality(quality: Optional[int]) -> int:
	return max(1, min(100, int(quality or 100)))


def detect_ratio(width: int, height: int) -> str:
	img_ratio = width / height
	best, best_diff = None, math.inf
	for label, (w, h) in RATIOS.items():
		diff = abs(w / h - img_ratio)
		if diff < best_diff:
			best, best_diff = label, diff
	return best


def placement_box(pos: Mapping[str, float], width: int, height: int) -> Tuple[int, int, int, int]:
	"""Absolute (x, y, w, h) in pixels for a normalized placement rectangle."""
	w = max(1, round_half_up(float(pos["w"]) * width))
	h = max(1, round_half_up(float(pos["h"]) * height))
	x = round_half_up(float(pos["x"]) * width)
	y = round_half_up(float(pos["y"]) * height)
	return x, y, w, h


def png_compress_level(quality: int) -> int:
	return max(0, min(9, round_half_up((100 - quality) / 56 * 9)))


def format_bytes(size: int) -> str:
	if not size:
		return "0 B"
	if size < 1024:
		return f"{size} B"
	if size < 1024 * 1024:
		return f"{size / 1024:.1f} KB"
	return f"{size / 1024 / 1024:.2f} MB"


def header_hex(data: bytes, length: int = 64) -> str:
	return " ".join(f"{b:02X}" for b in data[:length])
