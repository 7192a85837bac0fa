from __future__ import annotations


class ImprintError(Exception):
	pass


class ArchiveError(ImprintError):
	"""Raised when the output zip cannot be assembled; fails the whole batch."""


class ExtractionError(ImprintError):
	"""Raised by a metadata tier that cannot produce tags for an image."""


class WatermarkNotFound(ImprintError):
	def __init__(self, watermark_id: str) -> None:
		super().__init__(f"Unknown watermark: {watermark_id}")
		self.watermark_id = watermark_id


class OutputPathError(ImprintError):
	"""Raised when an archive destination is outside the output directory or not a .zip."""
