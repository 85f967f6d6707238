from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    SCHOOL_ADMIN = "SCHOOL_ADMIN"
    CANTEEN_MANAGER = "CANTEEN_MANAGER"
    PARENT = "PARENT"


class ChildStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class FormatKind(str, Enum):
    """Registry upload formats; each maps to one extraction function."""

    PDF = "PDF"
    DELIMITED_TEXT = "DELIMITED_TEXT"
    SPREADSHEET = "SPREADSHEET"
