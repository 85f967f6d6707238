from app.core.models.school import School
from app.core.models.student_registry import StudentRegistryRow
from app.core.models.child import Child

__all__ = [
    "Child",
    "School",
    "StudentRegistryRow",
]
