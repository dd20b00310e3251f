"""
Image Ingestion Module
Loads the problem photo and handwriting sample from disk.
"""

import mimetypes
from pathlib import Path

import fitz  # pymupdf

from config import DPI
from .models import ImagePayload


SUPPORTED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/heic",
    "image/heif",
    "image/gif",
}

_EXTRA_TYPES = {
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".webp": "image/webp",
}


def guess_mime_type(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in _EXTRA_TYPES:
        return _EXTRA_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def render_pdf_page(pdf_path: Path, page_number: int = 0, dpi: int = DPI) -> ImagePayload:
    """
    Rasterize one PDF page to PNG.

    Args:
        pdf_path: Path to the PDF file
        page_number: Zero-indexed page number
        dpi: Target resolution

    Returns:
        PNG ImagePayload of the page
    """
    with fitz.open(pdf_path) as doc:
        if page_number < 0 or page_number >= len(doc):
            raise ValueError(f"Page {page_number} out of range (0-{len(doc) - 1})")

        zoom = dpi / 72  # PDF default is 72 DPI
        pix = doc[page_number].get_pixmap(matrix=fitz.Matrix(zoom, zoom))
        return ImagePayload(data=pix.tobytes("png"), mime_type="image/png")


def load_image(path: str | Path, allow_pdf: bool = True) -> ImagePayload:
    """
    Load an image file as an ImagePayload.

    A PDF is accepted when ``allow_pdf`` is set; its first page is rendered.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    mime_type = guess_mime_type(path)
    if mime_type == "application/pdf":
        if not allow_pdf:
            raise ValueError(f"PDF input is not accepted here: {path.name}")
        return render_pdf_page(path)

    if mime_type not in SUPPORTED_IMAGE_TYPES:
        raise ValueError(f"Unsupported image type {mime_type!r}: {path.name}")

    data = path.read_bytes()
    if not data:
        raise ValueError(f"Image is empty: {path.name}")

    return ImagePayload(data=data, mime_type=mime_type)
