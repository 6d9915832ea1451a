# blueprints/alternatives/registry.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy import func

from extensions import db
from models import Role, SchoolClass, SpecialClass, Student, Subject, SubjectAlternative, SubjectSet
from blueprints.admin import audit
from .errors import NotFoundError, ValidationError, atomic

log = logging.getLogger(__name__)

ENTITY = "subject_alternative"

# ===== DTO =====
@dataclass
class SubjectCount:
    subject_id: int
    subject_name: str
    students: int

@dataclass
class GroupSummary:
    alt_id: int
    class_id: int
    class_name: str
    group_name: str
    subject_ids: List[int]
    subjects: List[SubjectCount] = field(default_factory=list)
    total_students: int = 0
    assigned: int = 0
    unassigned: int = 0

@dataclass
class UpdateOutcome:
    group: SubjectAlternative
    released: int

@dataclass
class DeleteOutcome:
    alt_id: int
    group_name: str
    class_name: str
    removed_assignments: int

# ===== validation =====
def _subject_set(values: Iterable) -> SubjectSet:
    try:
        return SubjectSet.parse(values)
    except ValueError as ex:
        raise ValidationError(str(ex)) from ex

def _validate_definition(*, class_id: int, group_name: str, subject_ids: Iterable,
                         exclude_id: Optional[int] = None) -> tuple[SchoolClass, str, SubjectSet, dict[int, Subject]]:
    name = (group_name or "").strip()
    if not name:
        raise ValidationError("Group name is required")
    subject_set = _subject_set(subject_ids)

    klass = db.session.get(SchoolClass, class_id)
    if klass is None:
        raise NotFoundError("Invalid class selected")

    subjects = {s.id: s for s in db.session.query(Subject).filter(Subject.id.in_(subject_set.ids)).all()}
    if len(subjects) != len(subject_set):
        raise NotFoundError("One or more invalid subjects selected")

    others = db.session.query(SubjectAlternative).filter(SubjectAlternative.class_id == klass.id)
    if exclude_id is not None:
        others = others.filter(SubjectAlternative.id != exclude_id)
    others = others.order_by(SubjectAlternative.group_name.asc()).all()

    if any(o.group_name.lower() == name.lower() for o in others):
        raise ValidationError("A group with this name already exists for this class")

    # a subject may sit in only one alternative group per class
    conflicts = [
        f"{subjects[sid].name} (in {o.group_name})"
        for o in others for sid in subject_set if sid in o.subject_ids
    ]
    if conflicts:
        raise ValidationError("These subjects are already in other groups: " + ", ".join(conflicts))

    return klass, name, subject_set, subjects

def _get_group(alt_id: int) -> SubjectAlternative:
    group = db.session.get(SubjectAlternative, alt_id)
    if group is None:
        raise NotFoundError("Alternative group not found")
    return group

# ===== operations =====
def create_group(principal, *, class_id: int, group_name: str, subject_ids: Iterable) -> SubjectAlternative:
    principal.require_role(Role.ADMIN.value)
    klass, name, subject_set, subjects = _validate_definition(
        class_id=class_id, group_name=group_name, subject_ids=subject_ids,
    )
    with atomic():
        group = SubjectAlternative(class_id=klass.id, group_name=name, subject_ids=subject_set)
        db.session.add(group)
        db.session.flush()
        audit.record(principal, "CREATE", ENTITY, group.id, {
            "class_id": klass.id, "group_name": name, "subject_ids": subject_set.to_list(),
        })
    log.info("created alternative group %r for %s with subjects %s",
             name, klass.name, ", ".join(subjects[sid].name for sid in subject_set))
    return group

def update_group(principal, *, alt_id: int, class_id: int, group_name: str, subject_ids: Iterable) -> UpdateOutcome:
    """Replace name, class and subjects of a group.

    Assignments that no longer fit are released in the same transaction:
    rows pointing at a subject that left the set, or every row when the
    group moves to another class.
    """
    principal.require_role(Role.ADMIN.value)
    group = _get_group(alt_id)
    klass, name, subject_set, _ = _validate_definition(
        class_id=class_id, group_name=group_name, subject_ids=subject_ids, exclude_id=group.id,
    )
    with atomic():
        stale = db.session.query(SpecialClass).filter(SpecialClass.group_id == group.id)
        if klass.id == group.class_id:
            stale = stale.filter(SpecialClass.subject_id.notin_(subject_set.ids))
        released = stale.delete(synchronize_session=False)

        before = {"class_id": group.class_id, "group_name": group.group_name,
                  "subject_ids": group.subject_ids.to_list()}
        group.class_id = klass.id
        group.group_name = name
        group.subject_ids = subject_set
        audit.record(principal, "UPDATE", ENTITY, group.id, {
            "before": before,
            "after": {"class_id": klass.id, "group_name": name, "subject_ids": subject_set.to_list()},
            "released": released,
        })
    if released:
        log.info("group %s updated, %d assignment(s) released", group.id, released)
    return UpdateOutcome(group=group, released=released)

def delete_group(principal, alt_id: int) -> DeleteOutcome:
    principal.require_role(Role.ADMIN.value)
    group = _get_group(alt_id)
    outcome = DeleteOutcome(alt_id=group.id, group_name=group.group_name,
                            class_name=group.school_class.name if group.school_class else "",
                            removed_assignments=0)
    with atomic():
        outcome.removed_assignments = (
            db.session.query(SpecialClass)
            .filter(SpecialClass.group_id == group.id)
            .delete(synchronize_session=False)
        )
        db.session.delete(group)
        audit.record(principal, "DELETE", ENTITY, outcome.alt_id, {
            "group_name": outcome.group_name, "removed_assignments": outcome.removed_assignments,
        })
    log.info("deleted alternative group %r from %s (%d assignments)",
             outcome.group_name, outcome.class_name, outcome.removed_assignments)
    return outcome

def list_groups(principal, class_id: Optional[int] = None) -> List[GroupSummary]:
    principal.require_role(Role.ADMIN.value)
    q = (db.session.query(SubjectAlternative, SchoolClass)
         .join(SchoolClass, SchoolClass.id == SubjectAlternative.class_id))
    if class_id is not None:
        q = q.filter(SubjectAlternative.class_id == class_id)
    rows = q.order_by(SchoolClass.name.asc(), SubjectAlternative.group_name.asc()).all()
    if not rows:
        return []

    subject_names = dict(db.session.query(Subject.id, Subject.name).all())
    class_ids = {klass.id for _, klass in rows}
    roster_sizes = dict(
        db.session.query(Student.class_id, func.count(Student.id))
        .filter(Student.class_id.in_(class_ids))
        .group_by(Student.class_id)
        .all()
    )
    # only students still on the class roster count as assigned
    counts: dict[tuple[int, int], int] = {}
    for group_id, subject_id, n in (
        db.session.query(SpecialClass.group_id, SpecialClass.subject_id, func.count(SpecialClass.id))
        .join(Student, Student.id == SpecialClass.student_id)
        .join(SubjectAlternative, SubjectAlternative.id == SpecialClass.group_id)
        .filter(Student.class_id == SubjectAlternative.class_id)
        .filter(SpecialClass.group_id.in_([g.id for g, _ in rows]))
        .group_by(SpecialClass.group_id, SpecialClass.subject_id)
        .all()
    ):
        counts[(group_id, subject_id)] = n

    out: List[GroupSummary] = []
    for group, klass in rows:
        per_subject = [
            SubjectCount(subject_id=sid, subject_name=subject_names.get(sid, "Unknown subject"),
                         students=counts.get((group.id, sid), 0))
            for sid in group.subject_ids
        ]
        total = roster_sizes.get(klass.id, 0)
        assigned = sum(c.students for c in per_subject)
        out.append(GroupSummary(
            alt_id=group.id, class_id=klass.id, class_name=klass.name,
            group_name=group.group_name, subject_ids=group.subject_ids.to_list(),
            subjects=per_subject, total_students=total,
            assigned=assigned, unassigned=max(total - assigned, 0),
        ))
    return out
