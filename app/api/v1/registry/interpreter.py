"""
Map extracted rows onto the five registry fields.

Row 0 is a header when at least HEADER_MIN_FIELDS of the fields are recognised from the
alias table; otherwise every row is data read positionally (code, birth date and class
after first and last name, with trailing columns joined into the class name).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .normalizer import normalize_header

REGISTRY_FIELDS: Tuple[str, ...] = ("first_name", "last_name", "student_code", "birth_date", "class_name")

HEADER_ALIASES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "first_name": ("first name", "firstname", "prenom", "first"),
        "last_name": ("last name", "lastname", "nom", "surname", "last"),
        "student_code": ("student code", "studentcode", "code eleve", "matricule", "code"),
        "birth_date": ("birth date", "birthdate", "date de naissance", "date naissance", "dob", "date"),
        "class_name": ("class name", "classe", "class", "niveau"),
    }
)

HEADER_MIN_FIELDS = 3

_NORMALIZED_ALIASES: Mapping[str, frozenset] = MappingProxyType(
    {key: frozenset(normalize_header(a) for a in aliases) for key, aliases in HEADER_ALIASES.items()}
)


@dataclass(frozen=True)
class ParsedCandidateRow:
    first_name: str
    last_name: str
    student_code: str
    birth_date: str
    class_name: str


@dataclass
class InterpretationResult:
    students: List[ParsedCandidateRow] = field(default_factory=list)
    invalid_rows: List[Sequence[Any]] = field(default_factory=list)


def build_header_index(header_row: Sequence[Any]) -> Dict[str, int]:
    """Field -> column index. A later column matching the same field wins."""
    index: Dict[str, int] = {}
    for idx, cell in enumerate(header_row):
        normalized = normalize_header(cell)
        if not normalized:
            continue
        for key, aliases in _NORMALIZED_ALIASES.items():
            if normalized in aliases:
                index[key] = idx
    return index


def _cell(row: List[str], idx: int) -> str:
    return row[idx] if 0 <= idx < len(row) else ""


def interpret_rows(rows: Sequence[Sequence[Any]]) -> InterpretationResult:
    result = InterpretationResult()
    if not rows:
        return result

    header_index = build_header_index(rows[0] or [])
    has_header = len(header_index) >= HEADER_MIN_FIELDS

    for raw_row in rows[1:] if has_header else rows:
        raw_row = raw_row or []
        row = ["" if c is None else str(c).strip() for c in raw_row]
        if all(v == "" for v in row):
            continue

        if has_header:
            values = [_cell(row, header_index.get(key, -1)) for key in REGISTRY_FIELDS]
        else:
            if len(row) < len(REGISTRY_FIELDS):
                result.invalid_rows.append(raw_row)
                continue
            values = row[:4] + [" ".join(row[4:]).strip()]

        if not all(values):
            result.invalid_rows.append(raw_row)
            continue

        result.students.append(ParsedCandidateRow(*values))

    return result
