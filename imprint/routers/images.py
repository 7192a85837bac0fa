from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from imprint.routers.deps import get_output_dir, get_reader, get_store, get_watermarks
from imprint.schemas import ProcessRequest, ReadMetadataRequest, SaveZipRequest
from imprint.services.archive import save_archive
from imprint.services.config_store import ConfigStore
from imprint.services.errors import ArchiveError, OutputPathError
from imprint.services.fields import FieldSet
from imprint.services.metadata import ImageSource, MetadataReader
from imprint.services.pipeline import ImageInput, ProcessOptions, process_images
from imprint.services.watermarks import WatermarkStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])


@router.post("/process", summary="Process a batch of images and return them as a zip archive")
def process(
	req: ProcessRequest,
	store: ConfigStore = Depends(get_store),
	watermarks: WatermarkStore = Depends(get_watermarks),
):
	images = [
		ImageInput(name=img.name, data=img.data, metadata=FieldSet.from_dict(img.metadata.model_dump()))
		for img in req.images
	]
	options = ProcessOptions(
		watermark_id=req.watermark_id,
		strip=req.strip,
		output_format=req.output_format,
		quality=req.quality,
		folder_in_zip=req.folder_in_zip,
		zip_folder_name=req.zip_folder_name,
	)
	try:
		archive = process_images(images, options, store, watermarks)
	except ArchiveError as e:
		logger.error(f"Batch failed: {e}")
		raise HTTPException(status_code=500, detail=str(e)) from e
	return Response(content=archive, media_type="application/zip")


@router.post("/metadata", summary="Read every metadata tag of a batch of images")
def read_metadata(req: ReadMetadataRequest, reader: MetadataReader = Depends(get_reader)):
	return reader.read_batch([ImageSource(name=img.name, data=img.data) for img in req.images])


@router.post("/save-zip", summary="Write archive bytes under the output directory")
def save_zip(
	req: SaveZipRequest,
	store: ConfigStore = Depends(get_store),
	output_dir: Path = Depends(get_output_dir),
):
	try:
		name = save_archive(req.data, req.path, store, output_dir)
	except OutputPathError as e:
		raise HTTPException(status_code=400, detail=str(e)) from e
	except OSError as e:
		raise HTTPException(status_code=400, detail=f"Could not save archive: {e}") from e
	return {"name": name}
