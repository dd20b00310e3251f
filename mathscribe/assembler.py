"""
PDF Assembler Module
Binds finished page images into a single A4 document.
"""

from pathlib import Path

import fitz  # pymupdf

from .models import GeneratedPage


A4_WIDTH_PT = 595  # 210 mm
A4_HEIGHT_PT = 842  # 297 mm


def build_pdf(pages: list[GeneratedPage]) -> bytes:
    """Return PDF bytes with one full-bleed A4 page per image, in page order."""
    if not pages:
        raise ValueError("No pages to assemble")

    doc = fitz.open()
    try:
        for page in sorted(pages, key=lambda p: p.page_number):
            pdf_page = doc.new_page(width=A4_WIDTH_PT, height=A4_HEIGHT_PT)
            # Stretch to the full page like a scanned sheet
            pdf_page.insert_image(pdf_page.rect, stream=page.payload.data, keep_proportion=False)
        return doc.tobytes()
    finally:
        doc.close()


def save_pdf(pages: list[GeneratedPage], output_path: str | Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(build_pdf(pages))
    return output_path


def save_page_images(pages: list[GeneratedPage], output_dir: str | Path) -> list[Path]:
    """Write each page image as ``page_001.png`` etc."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for page in pages:
        payload = page.payload
        extension = payload.mime_type.split("/")[-1].replace("jpeg", "jpg")
        path = output_dir / f"page_{page.page_number:03d}.{extension}"
        path.write_bytes(payload.data)
        paths.append(path)
    return paths
