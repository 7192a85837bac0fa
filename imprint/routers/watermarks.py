from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from imprint.routers.deps import get_store, get_watermarks
from imprint.schemas import NameIn, PositionsIn
from imprint.services.config_store import ConfigStore
from imprint.services.errors import WatermarkNotFound
from imprint.services.watermarks import WatermarkStore

router = APIRouter(prefix="/watermarks", tags=["watermarks"])


@router.get("", summary="List watermarks with inline content")
def list_watermarks(watermarks: WatermarkStore = Depends(get_watermarks)):
	return watermarks.list()


@router.post("", summary="Import a watermark image into managed storage")
async def add_watermark(file: UploadFile = File(...), watermarks: WatermarkStore = Depends(get_watermarks)):
	data = await file.read()
	if not data:
		raise HTTPException(status_code=400, detail="Empty watermark file")
	return watermarks.add_bytes(file.filename or "watermark.png", data)


@router.patch("/{watermark_id}", summary="Rename a watermark")
def rename_watermark(watermark_id: str, body: NameIn, watermarks: WatermarkStore = Depends(get_watermarks)):
	try:
		watermarks.rename(watermark_id, body.name)
	except WatermarkNotFound as e:
		raise HTTPException(status_code=404, detail=str(e)) from e
	return {"id": watermark_id, "name": body.name}


@router.delete("/{watermark_id}", summary="Delete a watermark and its placements")
def delete_watermark(watermark_id: str, watermarks: WatermarkStore = Depends(get_watermarks)):
	try:
		watermarks.delete(watermark_id)
	except WatermarkNotFound as e:
		raise HTTPException(status_code=404, detail=str(e)) from e
	return {"id": watermark_id, "deleted": True}


@router.get("/{watermark_id}/positions", summary="Placement map keyed by aspect ratio")
def get_positions(watermark_id: str, store: ConfigStore = Depends(get_store)):
	return store.get_positions(watermark_id)


@router.put("/{watermark_id}/positions", summary="Replace the placement map")
def set_positions(watermark_id: str, body: PositionsIn, store: ConfigStore = Depends(get_store)):
	positions = {ratio: p.model_dump() for ratio, p in body.positions.items()}
	store.set_positions(watermark_id, positions)
	return positions
