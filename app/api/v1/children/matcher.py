"""
Tiered matching of a parent's declared child identity against registry rows.

Tiers, first success wins:
  EXACT            normalized (first, last, code, birth date, class) equal  (DB lookup)
  CODE_BIRTH_DATE  single row sharing (code, birth date)                    (DB lookup)
  CLASS_LOOSE      among several such rows, the single one whose class loose token matches
  NAME_LOOSE       among class matches (or all rows if none), the single one whose
                   first and last name loose tokens match
Anything else is unresolved. Class is tried before name.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from app.api.v1.registry.normalizer import (
    normalize_class,
    normalize_code,
    normalize_date,
    normalize_loose_token,
    normalize_name,
)


class MatchTier(str, Enum):
    EXACT = "EXACT"
    CODE_BIRTH_DATE = "CODE_BIRTH_DATE"
    CLASS_LOOSE = "CLASS_LOOSE"
    NAME_LOOSE = "NAME_LOOSE"


@dataclass(frozen=True)
class ChildIdentity:
    """Parent-declared identity, kept raw alongside its canonical forms."""

    first_name: str
    last_name: str
    birth_date: str
    class_name: str
    student_code: str

    @property
    def norm_first_name(self) -> str:
        return normalize_name(self.first_name)

    @property
    def norm_last_name(self) -> str:
        return normalize_name(self.last_name)

    @property
    def norm_student_code(self) -> str:
        return normalize_code(self.student_code)

    @property
    def norm_birth_date(self) -> Optional[str]:
        return normalize_date(self.birth_date)

    @property
    def norm_class_name(self) -> str:
        return normalize_class(self.class_name)


@dataclass(frozen=True)
class MatchResult:
    row: Any
    tier: MatchTier


def disambiguate(identity: ChildIdentity, candidates: Sequence[Any]) -> Optional[MatchResult]:
    """
    Pick the unique registry row among rows sharing the identity's code and birth date.
    Rows need first_name, last_name and class_name attributes.
    """
    if not candidates:
        return None
    if len(candidates) == 1:
        return MatchResult(candidates[0], MatchTier.CODE_BIRTH_DATE)

    class_token = normalize_loose_token(identity.class_name)
    class_matches = (
        [c for c in candidates if normalize_loose_token(c.class_name) == class_token]
        if class_token
        else []
    )
    if len(class_matches) == 1:
        return MatchResult(class_matches[0], MatchTier.CLASS_LOOSE)

    first_token = normalize_loose_token(identity.first_name)
    last_token = normalize_loose_token(identity.last_name)
    pool = class_matches or candidates
    name_matches = [
        c
        for c in pool
        if normalize_loose_token(c.first_name) == first_token
        and normalize_loose_token(c.last_name) == last_token
    ]
    if len(name_matches) == 1:
        return MatchResult(name_matches[0], MatchTier.NAME_LOOSE)
    return None
