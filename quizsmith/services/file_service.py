import asyncio
import io
import logging
from typing import List

import fitz  # PyMuPDF
import google.generativeai as genai
from PIL import Image
from pydantic import BaseModel

from quizsmith.core.config import settings
from quizsmith.core.errors import QuizValidationError, TransportFailure

logger = logging.getLogger(__name__)

FILE_TYPES = ("text", "image")
PDF_MAGIC = b"%PDF"


class ExtractedDocument(BaseModel):
    """Per-page text segments plus the page count credits are measured on."""
    segments: List[str]
    page_count: int


def validate_pdf(content: bytes, filename: str) -> None:
    """
    Strict PDF validation:
    1. Extension must be .pdf
    2. File must not be empty or exceed the size limit
    3. Magic bytes must start with %PDF
    """
    if not filename:
        raise QuizValidationError("File not provided.")

    if not filename.lower().endswith(".pdf"):
        raise QuizValidationError(
            f"Only PDF files are accepted. Got: '{filename.rsplit('.', 1)[-1]}'"
        )

    if len(content) == 0:
        raise QuizValidationError("Uploaded file is empty.")

    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise QuizValidationError(
            f"File too large ({len(content) / (1024*1024):.1f} MB). "
            f"Maximum is {settings.MAX_FILE_SIZE_MB} MB."
        )

    if not content[:4].startswith(PDF_MAGIC):
        raise QuizValidationError("File does not appear to be a valid PDF (invalid magic bytes).")


async def extract_document(content: bytes, filename: str, file_type: str) -> ExtractedDocument:
    """
    Text PDFs: PyMuPDF text, one segment per page.
    Image PDFs: first MAX_OCR_PAGES pages rendered and read by Gemini Vision.
    """
    if file_type not in FILE_TYPES:
        raise QuizValidationError("Invalid file type")
    validate_pdf(content, filename)

    if file_type == "text":
        document = await asyncio.to_thread(_read_text_pdf, content)
    else:
        page_count, images = await asyncio.to_thread(_render_pages, content)
        segments = await asyncio.gather(*(_ocr_page(png) for png in images))
        document = ExtractedDocument(segments=list(segments), page_count=page_count)

    if not any(s.strip() for s in document.segments):
        raise QuizValidationError("No text extracted from file.")

    logger.info(f"[FILE] ✓ {filename}: {document.page_count} pages, {len(document.segments)} segments")
    return document


def _open(content: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=content, filetype="pdf")
    except Exception as e:
        raise QuizValidationError(f"PDF extraction failed: {e}")


def _read_text_pdf(content: bytes) -> ExtractedDocument:
    with _open(content) as doc:
        if doc.page_count == 0:
            raise QuizValidationError("PDF has no pages.")
        if doc.page_count > settings.MAX_PDF_PAGES:
            raise QuizValidationError(
                f"Invalid number of pages. Maximum allowed number of pages is {settings.MAX_PDF_PAGES} pages"
            )
        segments = [page.get_text("text") for page in doc]
        page_count = doc.page_count

    if sum(len(s.strip()) for s in segments) < settings.MIN_TEXT_PDF_CHARS:
        raise QuizValidationError(f"File must have more than {settings.MIN_TEXT_PDF_CHARS} characters.")

    return ExtractedDocument(segments=segments, page_count=page_count)


def _render_pages(content: bytes) -> tuple[int, list[bytes]]:
    """Render the first MAX_OCR_PAGES pages to PNG bytes."""
    with _open(content) as doc:
        if doc.page_count == 0:
            raise QuizValidationError("PDF has no pages.")
        last = min(doc.page_count, settings.MAX_OCR_PAGES)
        images = [doc[i].get_pixmap(dpi=150).tobytes("png") for i in range(last)]
        return doc.page_count, images


async def _ocr_page(png: bytes) -> str:
    """Extract text from one rendered page using Gemini Vision."""
    if not settings.GOOGLE_API_KEY:
        raise TransportFailure("Image OCR is not configured.")

    image = Image.open(io.BytesIO(png))
    genai.configure(api_key=settings.GOOGLE_API_KEY, transport="rest")
    model = genai.GenerativeModel(
        settings.GEMINI_VISION_MODEL,
        generation_config={"temperature": 0},
    )
    prompt = (
        "Extract all legible text from this image accurately. "
        "Maintain the structure where possible."
    )

    try:
        response = await asyncio.to_thread(model.generate_content, [prompt, image])
    except Exception as e:
        logger.error(f"[FILE] Image OCR failed: {e}")
        raise TransportFailure("Image OCR failed.")

    result = response.text.strip()
    if result.lower() in ["no text found", "no_text_found"]:
        return ""
    return result
