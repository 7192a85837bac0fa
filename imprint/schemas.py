from __future__ import annotations

import base64
import binascii
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def decode_base64(value: str) -> bytes:
	# tolerate data: URLs as produced by the watermark listing
	if value.startswith("data:") and "," in value:
		value = value.split(",", 1)[1]
	try:
		return base64.b64decode(value, validate=True)
	except (binascii.Error, ValueError) as e:
		raise ValueError(f"invalid base64 payload: {e}") from e


class CustomFieldIn(CamelModel):
	key: str = ""
	value: str = ""


class FieldSetIn(CamelModel):
	title: Optional[str] = None
	author: Optional[str] = None
	copyright: Optional[str] = None
	software: Optional[str] = None
	description: Optional[str] = None
	keywords: Optional[str] = None
	comment: Optional[str] = None
	custom: List[CustomFieldIn] = Field(default_factory=list)


class ImageIn(CamelModel):
	name: str
	data: bytes
	metadata: FieldSetIn = Field(default_factory=FieldSetIn)

	@field_validator("data", mode="before")
	@classmethod
	def _decode(cls, v):
		return decode_base64(v) if isinstance(v, str) else v


class ProcessRequest(CamelModel):
	images: List[ImageIn]
	watermark_id: Optional[str] = None
	folder_in_zip: bool = False
	zip_folder_name: Optional[str] = None
	strip: bool = False
	output_format: Optional[str] = None
	quality: Optional[int] = None


class ReadMetadataRequest(CamelModel):
	images: List[ImageIn]


class SaveZipRequest(CamelModel):
	data: bytes
	path: str

	@field_validator("data", mode="before")
	@classmethod
	def _decode(cls, v):
		return decode_base64(v) if isinstance(v, str) else v


class NameIn(CamelModel):
	name: str


class Placement(CamelModel):
	x: float = Field(ge=0, le=1)
	y: float = Field(ge=0, le=1)
	w: float = Field(ge=0, le=1)
	h: float = Field(ge=0, le=1)


class PositionsIn(CamelModel):
	positions: Dict[str, Placement]


class SavedValueIn(CamelModel):
	field_key: str
	value: str


class SettingsIn(CamelModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

	output_format: Optional[str] = None
	quality: Optional[int] = None
	powered_by: Optional[bool] = None
	defaults: FieldSetIn = Field(default_factory=FieldSetIn)
