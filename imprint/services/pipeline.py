from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Sequence

from PIL import Image, ImageOps

from imprint.config import DEFAULT_OUTPUT_FORMAT, DEFAULT_QUALITY, DEFAULT_ZIP_FOLDER
from imprint.services.archive import ProcessedFile, build_archive
from imprint.services.config_store import ConfigStore
from imprint.services.conversion import carried_metadata, convert_format, encode_working, working_image
from imprint.services.fields import FieldSet, build_exif, effective_fields, write_exif
from imprint.services.image_utils import detect_ratio, placement_box
from imprint.services.watermarks import WatermarkStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageInput:
	name: str
	data: bytes
	metadata: FieldSet = field(default_factory=FieldSet)


@dataclass(frozen=True)
class ProcessOptions:
	watermark_id: Optional[str] = None
	strip: bool = False
	output_format: Optional[str] = None
	quality: Optional[int] = None
	folder_in_zip: bool = False
	zip_folder_name: Optional[str] = None


@dataclass(frozen=True)
class Watermark:
	content: bytes
	positions: Mapping[str, Mapping[str, float]]


def prepare_image(data: bytes, strip: bool, exif_fields: Optional[Dict[str, Dict[str, str]]] = None) -> bytes:
	"""Strip or keep the source metadata and write user fields in the same re-encode."""
	if strip:
		# only raw pixels cross over; every container segment is left behind
		with Image.open(BytesIO(data)) as src:
			rgba = src.convert("RGBA")
		img = Image.frombytes("RGBA", rgba.size, rgba.tobytes())
		carry: Dict[str, Any] = {}
	else:
		with Image.open(BytesIO(data)) as src:
			src.load()
			carry = carried_metadata(src)
			img = working_image(src)
			if img is src:
				img = src.copy()

	if exif_fields is not None:
		try:
			carry["exif"] = write_exif(carry.get("exif"), exif_fields)
		except Exception:
			logger.exception("Metadata write failed, continuing without user fields")

	return encode_working(img, carry)


def apply_watermark(buffer: bytes, watermark: Watermark) -> bytes:
	"""Composite the watermark at the placement stored for the image's ratio.

	Returns ``buffer`` unchanged when the ratio has no stored placement.
	"""
	with Image.open(BytesIO(buffer)) as base:
		base.load()
		carry = carried_metadata(base)
		width, height = base.size
		if not width or not height:
			return buffer
		ratio = detect_ratio(width, height)
		pos = watermark.positions.get(ratio)
		if not pos:
			logger.debug(f"No watermark placement for ratio {ratio}")
			return buffer
		x, y, w, h = placement_box(pos, width, height)

		with Image.open(BytesIO(watermark.content)) as wm:
			overlay = ImageOps.pad(wm.convert("RGBA"), (w, h), color=(0, 0, 0, 0))

		canvas = base.convert("RGBA")
	canvas.alpha_composite(overlay, dest=(x, y))
	return encode_working(canvas, carry)


def process_image(
	image: ImageInput,
	settings: Mapping[str, Any],
	strip: bool,
	fmt: str,
	quality: int,
	watermark: Optional[Watermark] = None,
) -> ProcessedFile:
	fields = effective_fields(image.metadata, settings)
	exif_fields = build_exif(fields) if fields.has_content() else None

	buffer = image.data
	try:
		buffer = prepare_image(image.data, strip, exif_fields)
	except Exception:
		logger.exception(f"Could not decode {image.name}, passing source through")

	if watermark is not None:
		try:
			buffer = apply_watermark(buffer, watermark)
		except Exception:
			logger.exception(f"Watermark failed for {image.name}")

	buffer = convert_format(buffer, fmt, quality)
	return ProcessedFile(name=image.name, data=buffer)


def resolve_watermark(watermarks: WatermarkStore, watermark_id: Optional[str]) -> Optional[Watermark]:
	if not watermark_id:
		return None
	loaded = watermarks.load(watermark_id)
	if loaded is None:
		logger.warning(f"Watermark {watermark_id} not available, processing without it")
		return None
	content, positions = loaded
	return Watermark(content=content, positions=positions)


def process_images(
	images: Sequence[ImageInput],
	options: ProcessOptions,
	store: ConfigStore,
	watermarks: WatermarkStore,
) -> bytes:
	"""Run the batch and return the zip archive bytes."""
	settings = store.load().get("settings") or {}
	fmt = options.output_format or settings.get("outputFormat") or DEFAULT_OUTPUT_FORMAT
	quality = options.quality
	if quality is None:
		quality = settings.get("quality", DEFAULT_QUALITY)
	watermark = resolve_watermark(watermarks, options.watermark_id)

	processed: List[ProcessedFile] = []
	for image in images:
		processed.append(process_image(image, settings, options.strip, fmt, quality, watermark))
		logger.info(f"Processed {image.name} ({len(processed)}/{len(images)})")

	folder = (options.zip_folder_name or DEFAULT_ZIP_FOLDER) if options.folder_in_zip else None
	return build_archive(processed, folder)
