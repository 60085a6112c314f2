from __future__ import annotations

import csv
import io
import logging
from pathlib import PurePath
from time import perf_counter
from typing import Callable, Dict, List, Tuple

import pdfplumber
import xlrd
from docx import Document
from openpyxl import load_workbook
from pypdf import PdfReader

logger = logging.getLogger(__name__)


class DecoderError(Exception):
    """Base class for failures turning an uploaded file into text."""


class UnsupportedFormatError(DecoderError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file type '{extension or '(none)'}'")


class DecodeError(DecoderError):
    pass


def file_extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lower()


def _decode_pdf(data: bytes) -> str:
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            return "\n".join(page.extract_text() or "" for page in pdf.pages)
    except Exception as exc:
        logger.info("pdfplumber failed (%s); retrying with pypdf", exc)

    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _rows_to_text(rows: List[List[object]]) -> str:
    # the extractor reads commas as thousands separators, so cells are tab-separated
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter="\t", lineterminator="\n")
    for row in rows:
        cells = ["" if cell is None else cell for cell in row]
        if not any(str(cell).strip() for cell in cells):
            continue
        writer.writerow(cells)
    return buffer.getvalue()


def _decode_xlsx(data: bytes) -> str:
    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        sheets = []
        for sheet in workbook.worksheets:
            sheets.append(_rows_to_text([list(row) for row in sheet.iter_rows(values_only=True)]))
        return "\n".join(sheets)
    finally:
        workbook.close()


def _decode_xls(data: bytes) -> str:
    book = xlrd.open_workbook(file_contents=data)
    sheets = []
    for sheet in book.sheets():
        sheets.append(_rows_to_text([sheet.row_values(index) for index in range(sheet.nrows)]))
    return "\n".join(sheets)


def _decode_docx(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.append("\t".join(cell.text for cell in row.cells))
    return "\n".join(parts)


def _decode_plain(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


DECODERS: Dict[str, Callable[[bytes], str]] = {
    ".pdf": _decode_pdf,
    ".xlsx": _decode_xlsx,
    ".xls": _decode_xls,
    ".docx": _decode_docx,
    ".txt": _decode_plain,
    ".csv": _decode_plain,
}

SUPPORTED_EXTENSIONS: Tuple[str, ...] = tuple(DECODERS)


def is_supported(filename: str) -> bool:
    return file_extension(filename) in DECODERS


def decode(data: bytes, filename: str) -> str:
    """Flatten an uploaded report into plain text using the decoder for its extension.

    Raises ``UnsupportedFormatError`` for unknown extensions and ``DecodeError``
    when the file cannot be read.
    """
    extension = file_extension(filename)
    decoder = DECODERS.get(extension)
    if decoder is None:
        raise UnsupportedFormatError(extension)
    start = perf_counter()
    try:
        text = decoder(data)
    except Exception as exc:
        raise DecodeError(f"Failed to extract text from {filename}: {exc}") from exc
    elapsed = (perf_counter() - start) * 1000
    logger.debug("decode filename=%s bytes=%s chars=%s elapsed_ms=%.2f", filename, len(data), len(text), elapsed)
    return text
