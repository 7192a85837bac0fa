from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Dict, Optional

from PIL import Image, PngImagePlugin

from imprint.services.encoders import to_bmp, to_pdf
from imprint.services.image_utils import clamp_quality, png_compress_level

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("jpeg", "png", "webp", "tiff", "gif", "bmp", "pdf")

# modes the lossless working container can hold as-is
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


def carried_metadata(img: Image.Image) -> Dict[str, Any]:
	"""EXIF, ICC profile, XMP and density of a decoded image, in Pillow save() terms."""
	info = img.info
	carry: Dict[str, Any] = {}
	if info.get("exif"):
		carry["exif"] = info["exif"]
	if info.get("icc_profile"):
		carry["icc_profile"] = info["icc_profile"]
	xmp = info.get("xmp") or info.get("XML:com.adobe.xmp")
	if xmp:
		carry["xmp"] = xmp.encode("utf-8") if isinstance(xmp, str) else xmp
	if info.get("dpi"):
		carry["dpi"] = info["dpi"]
	return carry


def _has_alpha(img: Image.Image) -> bool:
	return "A" in img.getbands() or "transparency" in img.info


def working_image(img: Image.Image) -> Image.Image:
	if img.mode in _PNG_MODES:
		return img
	return img.convert("RGBA" if _has_alpha(img) else "RGB")


def _png_params(carry: Optional[Dict[str, Any]]) -> Dict[str, Any]:
	# the PNG writer has no xmp= keyword, XMP goes in as an iTXt chunk
	params = dict(carry or {})
	xmp = params.pop("xmp", None)
	if xmp:
		info = PngImagePlugin.PngInfo()
		info.add_itxt("XML:com.adobe.xmp", xmp.decode("utf-8", errors="replace"))
		params["pnginfo"] = info
	return params


def encode_working(img: Image.Image, carry: Optional[Dict[str, Any]] = None) -> bytes:
	"""Lossless PNG holding the image between pipeline steps."""
	out = BytesIO()
	working_image(img).save(out, format="PNG", **_png_params(carry))
	return out.getvalue()


def _save(img: Image.Image, fmt: str, **params: Any) -> bytes:
	out = BytesIO()
	img.save(out, format=fmt, **params)
	return out.getvalue()


def _encode(buffer: bytes, fmt: str, q: int) -> bytes:
	if fmt == "bmp":
		return to_bmp(buffer)
	if fmt == "pdf":
		return to_pdf(buffer, q)

	with Image.open(BytesIO(buffer)) as src:
		src.load()
		carry = carried_metadata(src)
		img = src.copy()

	if fmt == "png":
		return _save(working_image(img), "PNG", compress_level=png_compress_level(q), **_png_params(carry))
	if fmt == "webp":
		if img.mode not in ("RGB", "RGBA"):
			img = img.convert("RGBA" if _has_alpha(img) else "RGB")
		return _save(img, "WEBP", quality=q, **carry)
	if fmt == "tiff":
		if _has_alpha(img):
			# JPEG-in-TIFF cannot hold an alpha channel
			return _save(img.convert("RGBA"), "TIFF", compression="tiff_adobe_deflate", **carry)
		return _save(img.convert("RGB"), "TIFF", compression="jpeg", quality=q, **carry)
	if fmt == "gif":
		return _save(img, "GIF")
	if img.mode not in ("RGB", "L", "CMYK"):
		img = img.convert("RGB")
	return _save(img, "JPEG", quality=q, **carry)


def convert_format(buffer: bytes, fmt: Optional[str], quality: Optional[int]) -> bytes:
	"""Re-encode to the output format; returns ``buffer`` untouched if that fails."""
	q = clamp_quality(quality)
	fmt = (fmt or "jpeg").lower()
	if fmt == "jpg":
		fmt = "jpeg"
	if fmt not in OUTPUT_FORMATS:
		fmt = "jpeg"
	try:
		return _encode(buffer, fmt, q)
	except Exception:
		logger.exception(f"Format conversion to {fmt} failed")
		return buffer
