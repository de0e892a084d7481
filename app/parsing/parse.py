from __future__ import annotations

from io import BytesIO

from docx import Document
from pypdf import PdfReader

from .models import ParsedDoc

SUPPORTED_EXTENSIONS = ("pdf", "doc", "docx", "txt")


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _parse_txt(content: bytes) -> tuple[str, list[str]]:
    text = content.decode("utf-8", errors="replace")
    warnings = [] if text.strip() else ["No extractable text found in TXT."]
    return text, warnings


def _parse_pdf(content: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        reader = PdfReader(BytesIO(content))
        text_parts: list[str] = []
        for page in reader.pages:
            page_text = (page.extract_text() or "").strip()
            if page_text:
                text_parts.append(page_text)
        if not text_parts:
            warnings.append("No extractable text found in PDF.")
        return "\n".join(text_parts), warnings
    except Exception as exc:
        warnings.append(f"PDF parsing failed: {exc}")
        return "", warnings


def _parse_docx(content: bytes, *, legacy: bool = False) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        document = Document(BytesIO(content))
    except Exception as exc:
        if legacy:
            warnings.append("Legacy .doc files cannot be read; save the file as DOCX or PDF and upload again.")
        else:
            warnings.append(f"DOCX parsing failed: {exc}")
        return "", warnings

    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text and cell.text.strip()]
            if cells:
                paragraphs.append(" | ".join(cells))
    if not paragraphs:
        warnings.append("No extractable text found in DOCX.")
    return "\n".join(paragraphs), warnings


def extract_document(filename: str, content: bytes) -> ParsedDoc:
    extension = _extension(filename)
    if extension == "txt":
        text, warnings = _parse_txt(content)
    elif extension == "pdf":
        text, warnings = _parse_pdf(content)
    elif extension == "docx":
        text, warnings = _parse_docx(content)
    elif extension == "doc":
        text, warnings = _parse_docx(content, legacy=True)
    else:
        raise ValueError(
            f"Unsupported file type: {extension or 'unknown'}. Please upload a PDF, DOC, DOCX, or TXT file."
        )

    return ParsedDoc(
        file_name=filename,
        file_size=len(content),
        text=text,
        parsing_warnings=warnings,
    )


def extract_text(filename: str, content: bytes) -> str:
    """Return the plain text of an uploaded resume; raises ValueError when nothing is readable."""
    parsed = extract_document(filename, content)
    text = parsed.text.strip()
    if not text:
        reason = parsed.parsing_warnings[0] if parsed.parsing_warnings else "No text could be extracted."
        raise ValueError(reason)
    return text
