from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from docx import Document as DocxDocument
from pypdf import PdfReader

SUPPORTED_EXTENSIONS = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
    ".txt": "text/plain",
}


class UnsupportedFileTypeError(ValueError):
    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(f"Unsupported file type: {extension or 'unknown'}")


@dataclass
class ExtractedText:
    text: str
    page_count: int


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def content_type_for(filename: str) -> str:
    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(extension.lstrip("."))
    return SUPPORTED_EXTENSIONS[extension]


def extract_text(filename: str, data: bytes) -> ExtractedText:
    """Plain text of a PDF, Word or text file."""
    extension = file_extension(filename)
    if extension == ".pdf":
        reader = PdfReader(BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
        return ExtractedText(text="\n\n".join(pages).strip(), page_count=len(pages))
    if extension in (".docx", ".doc"):
        # Legacy .doc only works when the file is really OOXML
        document = DocxDocument(BytesIO(data))
        paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
        return ExtractedText(text="\n".join(paragraphs), page_count=1)
    if extension == ".txt":
        return ExtractedText(text=data.decode("utf-8", errors="replace").strip(), page_count=1)
    raise UnsupportedFileTypeError(extension.lstrip("."))
