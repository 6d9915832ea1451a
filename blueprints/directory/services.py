# blueprints/directory/services.py
from __future__ import annotations
from typing import List, Optional

from sqlalchemy import func, or_

from extensions import db
from models import Program, SchoolClass, Student, Subject, SubjectAlternative


class ClassNotFound(LookupError):
    pass


def list_classes(*, with_alternatives: bool = False) -> List[dict]:
    """Classes ordered by name, with program name and number of alternative groups."""
    groups = (db.session.query(SubjectAlternative.class_id, func.count(SubjectAlternative.id).label("n"))
              .group_by(SubjectAlternative.class_id)
              .subquery())
    q = (db.session.query(SchoolClass, Program.name, func.coalesce(groups.c.n, 0))
         .outerjoin(Program, Program.id == SchoolClass.program_id)
         .outerjoin(groups, groups.c.class_id == SchoolClass.id))
    if with_alternatives:
        q = q.filter(groups.c.n > 0)
    return [
        {"id": c.id, "name": c.name, "level": c.level, "program_name": program, "groups": n}
        for c, program, n in q.order_by(SchoolClass.name.asc()).all()
    ]


def list_subjects(q: Optional[str] = None) -> List[Subject]:
    s = db.session.query(Subject)
    if q:
        term = f"%{q.strip()}%"
        s = s.filter(or_(Subject.name.like(term), Subject.code.like(term)))
    return s.order_by(Subject.name.asc()).all()


def class_students(class_id: int) -> List[Student]:
    if db.session.get(SchoolClass, class_id) is None:
        raise ClassNotFound(class_id)
    return (db.session.query(Student)
            .filter(Student.class_id == class_id)
            .order_by(Student.first_name.asc(), Student.last_name.asc(), Student.id.asc())
            .all())
