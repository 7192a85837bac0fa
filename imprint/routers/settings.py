from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from imprint.routers.deps import get_store
from imprint.schemas import NameIn, SavedValueIn, SettingsIn
from imprint.services.config_store import ConfigStore

router = APIRouter(tags=["settings"])


@router.get("/config", summary="The whole persisted configuration")
def get_config(store: ConfigStore = Depends(get_store)):
	return store.load()


@router.put("/config/last-zip-name", summary="Remember the last archive name")
def set_last_zip_name(body: NameIn, store: ConfigStore = Depends(get_store)):
	store.set_last_zip_name(body.name)
	return {"lastZipName": body.name}


@router.get("/settings", summary="Global settings")
def get_settings(store: ConfigStore = Depends(get_store)):
	return store.get_settings()


@router.put("/settings", summary="Replace the global settings")
def save_settings(body: SettingsIn, store: ConfigStore = Depends(get_store)):
	settings = body.model_dump(by_alias=True, exclude_none=True)
	store.save_settings(settings)
	return settings


@router.get("/saved-values", summary="Remembered values per metadata field")
def get_saved_values(store: ConfigStore = Depends(get_store)):
	return store.get_saved_values()


@router.post("/saved-values", summary="Remember a field value")
def add_saved_value(body: SavedValueIn, store: ConfigStore = Depends(get_store)):
	values = store.add_saved_value(body.field_key, body.value)
	if values is None:
		raise HTTPException(status_code=400, detail="Value is blank")
	return values


@router.delete("/saved-values/{field_key}", summary="Forget a remembered field value")
def delete_saved_value(field_key: str, value: str, store: ConfigStore = Depends(get_store)):
	values = store.delete_saved_value(field_key, value)
	if values is None:
		raise HTTPException(status_code=404, detail=f"No saved values for {field_key}")
	return values
