from __future__ import annotations

import struct
from io import BytesIO
from typing import Dict, List, Optional

import numpy as np
from PIL import Image

BMP_HEADER_SIZE = 54
BMP_PIXELS_PER_METER = 2835  # ~72 dpi


def encode_bmp(pixels, width: int, height: int) -> bytes:
	"""24-bit uncompressed top-down BMP from packed RGB pixels."""
	rgb = np.frombuffer(bytes(pixels), dtype=np.uint8).reshape(height, width, 3)
	row_size = (width * 3 + 3) // 4 * 4
	pixel_array_size = row_size * height
	file_size = BMP_HEADER_SIZE + pixel_array_size

	rows = np.zeros((height, row_size), dtype=np.uint8)
	rows[:, : width * 3] = rgb[..., ::-1].reshape(height, width * 3)

	file_header = struct.pack("<2sIHHI", b"BM", file_size, 0, 0, BMP_HEADER_SIZE)
	info_header = struct.pack(
		"<IiiHHIIiiII",
		40,
		width,
		-height,  # negative = top-down row order
		1,
		24,
		0,  # BI_RGB
		pixel_array_size,
		BMP_PIXELS_PER_METER,
		BMP_PIXELS_PER_METER,
		0,
		0,
	)
	return file_header + info_header + rows.tobytes()


def to_bmp(buffer: bytes) -> bytes:
	with Image.open(BytesIO(buffer)) as img:
		rgb = img.convert("RGB")
	return encode_bmp(rgb.tobytes(), rgb.width, rgb.height)


class PdfBuilder:
	"""Appends numbered PDF objects and derives the xref table from what was written."""

	def __init__(self, version: str = "1.4") -> None:
		self._chunks: List[bytes] = []
		self._size = 0
		self.offsets: Dict[int, int] = {}
		self._write(f"%PDF-{version}\n".encode("ascii"))

	def _write(self, data: bytes) -> None:
		self._chunks.append(data)
		self._size += len(data)

	def add_object(self, num: int, body: str, stream: Optional[bytes] = None) -> None:
		self.offsets[num] = self._size
		self._write(f"{num} 0 obj\n{body}\n".encode("latin-1"))
		if stream is not None:
			self._write(b"stream\n")
			self._write(stream)
			self._write(b"\nendstream\n")
		self._write(b"endobj\n")

	def build(self, root: int) -> bytes:
		count = max(self.offsets) + 1
		xref_pos = self._size
		lines = [f"xref\n0 {count}\n", "0000000000 65535 f \n"]
		for num in range(1, count):
			if num in self.offsets:
				lines.append(f"{self.offsets[num]:010d} 00000 n \n")
			else:
				lines.append("0000000000 65535 f \n")
		lines.append(f"trailer\n<</Size {count} /Root {root} 0 R>>\nstartxref\n{xref_pos}\n%%EOF\n")
		self._write("".join(lines).encode("ascii"))
		return b"".join(self._chunks)


def encode_pdf(jpeg: bytes, width: int, height: int) -> bytes:
	"""Single-page PDF showing a JPEG at its pixel size."""
	content = f"q {width} 0 0 {height} 0 0 cm /Img Do Q".encode("ascii")
	pdf = PdfBuilder()
	pdf.add_object(1, "<</Type /Catalog /Pages 2 0 R>>")
	pdf.add_object(2, "<</Type /Pages /Kids [3 0 R] /Count 1>>")
	pdf.add_object(
		3,
		f"<</Type /Page /Parent 2 0 R /MediaBox [0 0 {width} {height}] "
		f"/Resources <</XObject <</Img 5 0 R>>>> /Contents 4 0 R>>",
	)
	pdf.add_object(4, f"<</Length {len(content)}>>", content)
	pdf.add_object(
		5,
		f"<</Type /XObject /Subtype /Image /Width {width} /Height {height} /ColorSpace /DeviceRGB "
		f"/BitsPerComponent 8 /Filter /DCTDecode /Length {len(jpeg)}>>",
		jpeg,
	)
	return pdf.build(root=1)


def to_pdf(buffer: bytes, quality: int = 90) -> bytes:
	with Image.open(BytesIO(buffer)) as img:
		rgb = img.convert("RGB")
	out = BytesIO()
	rgb.save(out, format="JPEG", quality=quality or 90)
	return encode_pdf(out.getvalue(), rgb.width, rgb.height)
