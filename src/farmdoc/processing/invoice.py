"""Invoice header fields and line amount derivation."""
from __future__ import annotations

import re
from typing import Any, Optional

from farmdoc.processing.fields import normalize_date, normalize_number

_DATE = r"\d{2}[.\-/]\d{2}[.\-/]\d{4}|\d{4}[.\-/]\d{2}[.\-/]\d{2}"
_AMOUNT = r"\s*[:\-]?\s*([0-9 .,\-]+)\b"

SERIES_DATE_RE = re.compile(r"Serija[^\n\r]*?\b(\d{2}[.\-/]\d{2}[.\-/]\d{4})\b", re.IGNORECASE)
LABELED_DATE_RE = re.compile(r"\b(?:Išrašymo|Išdavimo|Data|Issue)\s*[:\-]?\s*(" + _DATE + ")", re.IGNORECASE)
ANY_DATE_RE = re.compile(r"\b(" + _DATE + r")\b")

NUMBER_RES = (
    re.compile(r"Sąskaita\s*-\s*faktūra[^\n\r]*?\b(?:serija)?\s*Nr\.?\s*[:.]?\s*([A-Za-z0-9\-/_.]+)", re.IGNORECASE),
    re.compile(r"\bSerija[^\n\r]*?\b([A-Z0-9\-/_.]{5,})\b", re.IGNORECASE),
    re.compile(r"\b(?:Faktūra|Invoice)\s*Nr\.?\s*([A-Za-z0-9\-/_.]+)", re.IGNORECASE),
    re.compile(r"\bNr\.?\s*([A-Za-z0-9\-/_.]{4,})\b"),
)

COMPANY_LINE_RE = re.compile(r"^.*\b(?:UAB|AB|MB|IĮ|VŠĮ|ŪB)\b.*$", re.IGNORECASE | re.MULTILINE)
VAT_CODE_RE = re.compile(r"\b(?:PVM\s*kodas|VAT)\s*[:\-]?\s*([A-Z]{2}\d{5,12})", re.IGNORECASE)
COMPANY_CODE_RE = re.compile(r"\b(?:Įmonės\s*kodas|Imonės\s*kodas|Kodas)\s*[:\-]?\s*(\d{7,})", re.IGNORECASE)
IBAN_RE = re.compile(r"\bIBAN\s*[:\-]?\s*([A-Z]{2}[0-9A-Z]{13,34})\b")
CURRENCY_RE = re.compile(r"\b(EUR|USD|GBP|PLN)\b")

TOTAL_NET_RE = re.compile(
    r"\b(?:PVM\s*apmokestinama\s*suma|Suma\s*be\s*PVM|Tarpinė\s*suma|Net\s*amount)" + _AMOUNT, re.IGNORECASE
)
TOTAL_VAT_RE = re.compile(r"\b(?:PVM\s*suma|VAT)" + _AMOUNT, re.IGNORECASE)
TOTAL_GROSS_RE = re.compile(r"\b(?:Iš\s*viso|Bendra\s*suma|Total|Suma\s*su\s*PVM)" + _AMOUNT, re.IGNORECASE)
VAT_RATE_RE = re.compile(r"\bPVM\s*tarif(?:as|ai)?\s*[:\-]?\s*(\d{1,2})\s*%", re.IGNORECASE)

VENDOR_HINTS = (
    ("Kalnapilis", re.compile(r"Kalnapil", re.IGNORECASE)),
    ("Avena", re.compile(r"Avena", re.IGNORECASE)),
)

SUPPLIER_START = "Tiekėjas"
SUPPLIER_END = "Pirkėjas"


def _group(rx: re.Pattern[str], text: str) -> Optional[str]:
    m = rx.search(text)
    return m.group(1) if m else None


def between(text: str, start: str, end: str) -> Optional[str]:
    s = text.find(start)
    if s == -1:
        return None
    e = text.find(end, s + len(start))
    return text[s + len(start):] if e == -1 else text[s + len(start):e]


def most_recent_date(text: str) -> Optional[str]:
    dates = [d for d in (normalize_date(m) for m in ANY_DATE_RE.findall(text)) if d]
    return max(dates) if dates else None


def parse_supplier(text: str) -> dict[str, Optional[str]]:
    block = between(text, SUPPLIER_START, SUPPLIER_END) or text
    name = COMPANY_LINE_RE.search(block)
    return {
        "name": " ".join(name.group(0).split()).strip(" :-") if name else None,
        "code": _group(COMPANY_CODE_RE, block),
        "vat_code": _group(VAT_CODE_RE, block),
        "iban": _group(IBAN_RE, block),
    }


def parse_invoice_fields(text: str) -> dict[str, Any]:
    dated = _group(SERIES_DATE_RE, text) or _group(LABELED_DATE_RE, text)
    number = next((n for n in (_group(rx, text) for rx in NUMBER_RES) if n), None)
    vat_rate = _group(VAT_RATE_RE, text)
    return {
        "number": number,
        "date": normalize_date(dated) or most_recent_date(text),
        "currency": _group(CURRENCY_RE, text) or "EUR",
        "total_net": normalize_number(_group(TOTAL_NET_RE, text)),
        "total_vat": normalize_number(_group(TOTAL_VAT_RE, text)),
        "total_gross": normalize_number(_group(TOTAL_GROSS_RE, text)),
        "vat_rate": int(vat_rate) if vat_rate else None,
    }


def vendor_hint(text: str) -> Optional[str]:
    hits = [name for name, rx in VENDOR_HINTS if rx.search(text)]
    return ", ".join(hits) if hits else None


def derive_line_amounts(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Number the lines and fill net/gross/vat that the row layout omitted."""
    for line_no, rec in enumerate(records, start=1):
        rec["line_no"] = float(line_no)
        qty, price = rec.get("qty"), rec.get("unit_price")
        if rec.get("net") is None and qty is not None and price is not None:
            rec["net"] = round(qty * price, 2)
        net, rate = rec.get("net"), rec.get("vat_rate")
        if rec.get("gross") is None and net is not None and rate is not None:
            rec["gross"] = round(net * (1 + rate / 100), 2)
        if rec.get("vat") is None and rec.get("gross") is not None and net is not None:
            rec["vat"] = round(rec["gross"] - net, 2)
    return records


def _sum(records: list[dict[str, Any]], key: str) -> float:
    return sum(r.get(key) or 0.0 for r in records)


def parse_invoice_document(text: str, records: list[dict[str, Any]]) -> dict[str, Any]:
    """Invoice-level fields; totals missing from the text come from line sums."""
    invoice = parse_invoice_fields(text)
    for total, key in (("total_net", "net"), ("total_vat", "vat"), ("total_gross", "gross")):
        line_sum = _sum(records, key)
        if invoice[total] is None and line_sum:
            invoice[total] = round(line_sum, 2)
    return {
        "supplier": parse_supplier(text),
        "invoice": invoice,
        "vendor_hint": vendor_hint(text),
    }
