import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imprint.config import CONFIG_PATH, LOG_LEVEL, OUTPUT_DIR, WATERMARKS_DIR
from imprint.routers.images import router as images_router
from imprint.routers.settings import router as settings_router
from imprint.routers.watermarks import router as watermarks_router
from imprint.services.config_store import ConfigStore
from imprint.services.metadata import MetadataReader
from imprint.services.watermarks import WatermarkStore


def create_app(
	store: Optional[ConfigStore] = None,
	watermarks: Optional[WatermarkStore] = None,
	reader: Optional[MetadataReader] = None,
	output_dir: Optional[Path] = None,
) -> FastAPI:
	logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

	app = FastAPI(title="Imprint - Image Metadata API", version="0.1.0")

	# CORS (adjust origins in production)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=False,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	store = store or ConfigStore(CONFIG_PATH)
	app.state.store = store
	app.state.watermarks = watermarks or WatermarkStore(store, WATERMARKS_DIR)
	app.state.reader = reader or MetadataReader()
	app.state.output_dir = output_dir or OUTPUT_DIR

	app.include_router(images_router)
	app.include_router(watermarks_router)
	app.include_router(settings_router)

	return app


app = create_app()


def run() -> None:
	import uvicorn

	uvicorn.run("imprint.main:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
	# Local dev server: uvicorn imprint.main:app --reload
	run()
