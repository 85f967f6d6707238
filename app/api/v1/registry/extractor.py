"""
Turn an uploaded registry file into rows of string cells.

One parser per FormatKind (PDF, delimited text, spreadsheet), chosen once by
classify_upload(). Parsers never raise for a bad line: unusable lines go to
invalid_lines. Only an unreadable file (corrupt workbook/PDF) raises ValueError.
"""

import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional

from openpyxl import load_workbook
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from app.core.enums import FormatKind

from .normalizer import normalize_text

Row = List[str]

# Preference order breaks ties in delimiter detection
DELIMITER_CANDIDATES = (";", ",", "\t")
DEFAULT_DELIMITER = ";"

# Loose text: at least this many fields make a registry line
MIN_LINE_FIELDS = 5

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_LOOSE_FIELD_SPLIT_RE = re.compile(r"\s{2,}|\t|\s+\|\s+")
_PUNCT_SPLIT_RE = re.compile(r"[;,]")

# Label pairs that mark a header line in loosely formatted text
_HEADER_LINE_MARKERS = (
    ("first name", "last name"),
    ("student code", "birth date"),
    ("prenom", "nom"),
)


@dataclass
class ExtractionResult:
    rows: List[Row] = field(default_factory=list)
    invalid_lines: List[str] = field(default_factory=list)


def _split_lines(text: str) -> List[str]:
    return [line.strip() for line in _LINE_SPLIT_RE.split(text or "") if line.strip()]


# ----- Delimited text (CSV / TSV / semicolon) -----

def detect_delimiter(line: str) -> str:
    """Most frequent of ; , TAB in the line; ties go to the earlier one; ';' if none."""
    best, best_count = DEFAULT_DELIMITER, 0
    for candidate in DELIMITER_CANDIDATES:
        count = line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def parse_delimited_line(line: str, delimiter: str) -> Row:
    """Split one line, honouring double-quoted fields and "" escapes. Cells are trimmed."""
    cells: Row = []
    current: List[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    cells.append("".join(current).strip())
    return cells


def parse_delimited_text(text: str) -> ExtractionResult:
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = _split_lines(text)
    if not lines:
        return ExtractionResult()
    delimiter = detect_delimiter(lines[0])
    return ExtractionResult(rows=[parse_delimited_line(line, delimiter) for line in lines])


def extract_delimited(content: bytes) -> ExtractionResult:
    return parse_delimited_text(content.decode("utf-8", errors="replace"))


# ----- Spreadsheet (first sheet only) -----

def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    # Codes typed as numbers come back as 1234.0
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def extract_spreadsheet(content: bytes) -> ExtractionResult:
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValueError("Could not read the spreadsheet file.") from e

    try:
        # Chartsheets carry no cells; read the first worksheet
        if not wb.worksheets:
            return ExtractionResult()
        ws = wb.worksheets[0]
        rows = [[_cell_to_str(c) for c in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return ExtractionResult(rows=rows)


# ----- Loosely formatted text (PDF text layer) -----

def _is_header_line(line: str) -> bool:
    lower = normalize_text(line).lower()
    return any(a in lower and b in lower for a, b in _HEADER_LINE_MARKERS)


def _split_loose_line(line: str) -> List[str]:
    parts = [p for p in _LOOSE_FIELD_SPLIT_RE.split(line) if p]
    if len(parts) < MIN_LINE_FIELDS and _PUNCT_SPLIT_RE.search(line):
        parts = [p.strip() for p in _PUNCT_SPLIT_RE.split(line) if p.strip()]
    return parts


def parse_loose_text(text: str) -> ExtractionResult:
    """
    One student per line: first name, last name, code, birth date, class.
    Fields are separated by 2+ spaces, a tab or ' | ', falling back to , or ;.
    Everything after the fourth field is the class name.
    """
    result = ExtractionResult()
    for line in _split_lines(text):
        if _is_header_line(line):
            continue
        parts = _split_loose_line(line)
        if len(parts) < MIN_LINE_FIELDS:
            result.invalid_lines.append(line)
            continue
        first_name, last_name, student_code, birth_date, *class_parts = parts
        result.rows.append([first_name, last_name, student_code, birth_date, " ".join(class_parts).strip()])
    return result


def extract_pdf_text(content: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(content))
    except (PdfReadError, ValueError) as e:
        raise ValueError(f"Invalid PDF file: {e}") from e
    pages = []
    for page in reader.pages:
        pages.append(page.extract_text() or "")
    return "\n".join(pages)


def extract_pdf(content: bytes) -> ExtractionResult:
    return parse_loose_text(extract_pdf_text(content))


# ----- Format selection -----

EXTRACTORS: Mapping[FormatKind, Callable[[bytes], ExtractionResult]] = MappingProxyType(
    {
        FormatKind.PDF: extract_pdf,
        FormatKind.DELIMITED_TEXT: extract_delimited,
        FormatKind.SPREADSHEET: extract_spreadsheet,
    }
)


def classify_upload(filename: Optional[str], content_type: Optional[str]) -> Optional[FormatKind]:
    """Match by extension or MIME type, checking PDF, delimited text, spreadsheet in turn. None when unsupported."""
    name = (filename or "").lower()
    mime = (content_type or "").lower()
    if name.endswith(".pdf") or mime == "application/pdf":
        return FormatKind.PDF
    if name.endswith((".csv", ".txt")) or "csv" in mime:
        return FormatKind.DELIMITED_TEXT
    if name.endswith((".xlsx", ".xls")) or "spreadsheet" in mime or "excel" in mime:
        return FormatKind.SPREADSHEET
    return None


def extract_rows(kind: FormatKind, content: bytes) -> ExtractionResult:
    return EXTRACTORS[kind](content)
