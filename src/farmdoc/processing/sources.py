"""Turn uploaded bytes into the raw input the extractors expect.

PDFs become a text blob, spreadsheets (xlsx, csv) become a row-major grid.
"""
from __future__ import annotations

import csv
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Optional

import ftfy
import pdfplumber
from charset_normalizer import from_bytes as detect_encoding_from_bytes
from openpyxl import load_workbook
from pdfminer.high_level import extract_text as pdf_extract_text
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from structlog import get_logger

from farmdoc.core.errors import UnreadableDocumentError

logger = get_logger(__name__)

KIND_PDF = "pdf"
KIND_XLSX = "xlsx"
KIND_CSV = "csv"
KIND_TXT = "txt"


def detect_kind(data: bytes, filename: Optional[str] = None) -> str:
    suffix = Path(filename).suffix.lower() if filename else ""
    head = data[:4096]
    if head.startswith(b"%PDF") or suffix == ".pdf":
        return KIND_PDF
    if head[:2] == b"PK" or suffix in {".xlsx", ".xlsm"}:
        return KIND_XLSX
    if suffix in {".csv", ".tsv"}:
        return KIND_CSV
    sample = head.decode("utf-8", errors="ignore")
    if "\n" in sample and any(d in sample for d in (",", ";", "\t")) and suffix != ".txt":
        return KIND_CSV
    return KIND_TXT


def decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig", errors="strict")
    except UnicodeDecodeError:
        best = detect_encoding_from_bytes(data).best()
        if best is not None:
            return str(best)
        return ftfy.fix_text(data.decode("utf-8", errors="ignore"))


def pdf_quick_sanity(data: bytes) -> bool:
    """EOF marker near the end and at least one readable page."""
    if b"%%EOF" not in data[-2048:]:
        return False
    try:
        reader = PdfReader(BytesIO(data))
        return len(reader.pages) >= 1
    except (PdfReadError, ValueError, OSError):
        return False


def _pdf_text_plumber(data: bytes) -> str:
    texts: list[str] = []
    with pdfplumber.open(BytesIO(data)) as pdf:
        for page in pdf.pages:
            texts.append(page.extract_text() or "")
    return "\n".join(texts).strip()


def read_pdf_text(data: bytes) -> str:
    if not pdf_quick_sanity(data):
        raise UnreadableDocumentError("PDF is truncated or has no pages")
    text = pdf_extract_text(BytesIO(data)) or ""
    if not text.strip():
        logger.info("pdf_text_fallback", reader="pdfplumber")
        text = _pdf_text_plumber(data)
    return ftfy.fix_text(text).replace("\xa0", " ")


def read_xlsx_rows(data: bytes) -> list[list[Any]]:
    """Cells of the first worksheet; typed values (dates stay datetimes)."""
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as e:  # openpyxl raises several unrelated types on bad archives
        raise UnreadableDocumentError(f"Cannot open workbook: {e}") from e
    try:
        ws = wb.worksheets[0]
        rows: list[list[Any]] = []
        for row in ws.iter_rows(values_only=True):
            rows.append([ftfy.fix_text(v).strip() if isinstance(v, str) else v for v in row])
        return rows
    finally:
        wb.close()


def read_csv_rows(data: bytes) -> list[list[Any]]:
    text = ftfy.fix_text(decode_text(data))
    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    rows: list[list[Any]] = []
    for row in csv.reader(StringIO(text), dialect):
        rows.append([col.strip(" \t\ufeff") or None for col in row])
    return rows


def load_text(data: bytes, filename: Optional[str] = None) -> str:
    kind = detect_kind(data, filename)
    logger.info("detect_file_type", kind=kind, filename=filename)
    if kind == KIND_PDF:
        return read_pdf_text(data)
    if kind in (KIND_TXT, KIND_CSV):
        return ftfy.fix_text(decode_text(data))
    raise UnreadableDocumentError(f"Expected a PDF or text document, got {kind}")


def load_grid(data: bytes, filename: Optional[str] = None) -> list[list[Any]]:
    kind = detect_kind(data, filename)
    logger.info("detect_file_type", kind=kind, filename=filename)
    if kind == KIND_XLSX:
        return read_xlsx_rows(data)
    if kind in (KIND_CSV, KIND_TXT):
        return read_csv_rows(data)
    raise UnreadableDocumentError(f"Expected a spreadsheet, got {kind}")
