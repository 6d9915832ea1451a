from extensions import db

from .types import SubjectSet, SubjectSetType
from .user import Role, User
from .school import Program, SchoolClass, Subject, Student
from .alternative import SubjectAlternative, SpecialClass
from .audit_log import AuditLog

__all__ = [
    "db",
    "SubjectSet", "SubjectSetType",
    "Role", "User",
    "Program", "SchoolClass", "Subject", "Student",
    "SubjectAlternative", "SpecialClass",
    "AuditLog",
]
