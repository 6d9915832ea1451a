# blueprints/alternatives/engine.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Role, SchoolClass, SpecialClass, Student, Subject, SubjectAlternative
from blueprints.admin import audit
from blueprints.directory import services as directory
from .errors import AlternativesError, NotFoundError, ValidationError, atomic

log = logging.getLogger(__name__)

ENTITY = "subject_assignment"

# ===== records =====
@dataclass(frozen=True)
class StudentRef:
    student_id: int
    student_name: str

@dataclass
class GroupRoster:
    alt_id: int
    group_name: str
    subject_ids: List[int]
    by_subject: Dict[int, List[StudentRef]]
    unassigned: List[StudentRef]

    def counts(self) -> Dict[int, int]:
        return {sid: len(self.by_subject[sid]) for sid in self.subject_ids}

@dataclass
class ClassAssignments:
    class_id: int
    class_name: str
    students: List[StudentRef]
    groups: List[GroupRoster] = field(default_factory=list)

    @property
    def unassigned(self) -> List[StudentRef]:
        """Students missing a choice in at least one group, in roster order."""
        missing = {st.student_id for g in self.groups for st in g.unassigned}
        return [st for st in self.students if st.student_id in missing]

@dataclass
class AssignOutcome:
    assigned: int = 0
    moved: int = 0
    unchanged: int = 0
    subject_name: str = ""

    @property
    def total(self) -> int:
        return self.assigned + self.moved + self.unchanged

@dataclass
class BalanceOutcome:
    alt_id: int
    group_name: str
    assigned: int
    counts: Dict[int, int]

@dataclass
class GroupBalanceResult:
    alt_id: int
    group_name: str
    success: bool
    assigned: int
    message: str

# ===== planner =====
def plan_balance(counts: Mapping[int, int], student_ids: Sequence[int]) -> List[Tuple[int, int]]:
    """Place each student into the subject currently holding the fewest students.

    ``counts`` maps subject id -> current size; ties go to the lowest subject
    id. Returns (student_id, subject_id) pairs in placement order.
    """
    if not counts:
        raise ValueError("at least one subject is required")
    running = dict(counts)
    order = sorted(counts)
    placements: List[Tuple[int, int]] = []
    for student_id in student_ids:
        target = min(order, key=lambda sid: running[sid])
        running[target] += 1
        placements.append((student_id, target))
    return placements

# ===== reads =====
def _roster(class_id: int) -> List[StudentRef]:
    return [StudentRef(student_id=s.id, student_name=s.full_name)
            for s in directory.class_students(class_id)]

def _group_roster(group: SubjectAlternative, roster: List[StudentRef]) -> GroupRoster:
    chosen = dict(
        db.session.query(SpecialClass.student_id, SpecialClass.subject_id)
        .filter(SpecialClass.group_id == group.id)
        .all()
    )
    subject_ids = group.subject_ids.to_list()
    by_subject: Dict[int, List[StudentRef]] = {sid: [] for sid in subject_ids}
    unassigned: List[StudentRef] = []
    for st in roster:
        sid = chosen.get(st.student_id)
        if sid in by_subject:
            by_subject[sid].append(st)
        else:
            # no row, or a row left over from a subject no longer in the group
            unassigned.append(st)
    return GroupRoster(alt_id=group.id, group_name=group.group_name, subject_ids=subject_ids,
                       by_subject=by_subject, unassigned=unassigned)

def _get_class(class_id: int) -> SchoolClass:
    klass = db.session.get(SchoolClass, class_id)
    if klass is None:
        raise NotFoundError("Class not found")
    return klass

def _get_group(group_id: int) -> SubjectAlternative:
    group = db.session.get(SubjectAlternative, group_id)
    if group is None:
        raise NotFoundError("Alternative group not found")
    return group

def load_assignments(principal, class_id: int) -> ClassAssignments:
    principal.require_role(Role.ADMIN.value)
    klass = _get_class(class_id)
    roster = _roster(klass.id)
    groups = (db.session.query(SubjectAlternative)
              .filter(SubjectAlternative.class_id == klass.id)
              .order_by(SubjectAlternative.group_name.asc())
              .all())
    return ClassAssignments(
        class_id=klass.id, class_name=klass.name, students=roster,
        groups=[_group_roster(g, roster) for g in groups],
    )

# ===== writes =====
def _unique(ids: Iterable[int]) -> List[int]:
    seen: List[int] = []
    for i in ids:
        if i not in seen:
            seen.append(i)
    return seen

def _student_ids(student_ids: Iterable[int]) -> List[int]:
    ids = _unique(int(i) for i in student_ids)
    if not ids:
        raise ValidationError("Select at least one student")
    return ids

def _group_in_class(group_id: int, class_id: int) -> SubjectAlternative:
    group = _get_group(group_id)
    if group.class_id != class_id:
        raise ValidationError("Alternative group does not belong to this class")
    return group

def _check_students(ids: List[int], class_id: int) -> List[int]:
    found = {sid for (sid,) in db.session.query(Student.id)
             .filter(Student.id.in_(ids), Student.class_id == class_id).all()}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError("Invalid student ID: " + ", ".join(str(i) for i in missing))
    return ids

def assign_students(principal, *, student_ids: Iterable[int], subject_id: int, group_id: int, class_id: int) -> AssignOutcome:
    """Point each student's choice for the group at ``subject_id``.

    The (student, group) row is rewritten in place, so a student moving
    between subjects never has zero or two rows for the group. The batch is a
    single transaction.
    """
    principal.require_role(Role.ADMIN.value)
    ids = _student_ids(student_ids)
    group = _group_in_class(group_id, class_id)
    if subject_id not in group.subject_ids:
        raise ValidationError("Subject does not belong to the specified alternative group")
    _check_students(ids, class_id)
    subject = db.session.get(Subject, subject_id)

    outcome = AssignOutcome(subject_name=subject.name if subject else "")
    with atomic():
        existing = {
            row.student_id: row for row in
            db.session.query(SpecialClass)
            .filter(SpecialClass.group_id == group.id, SpecialClass.student_id.in_(ids))
            .all()
        }
        for sid in ids:
            row = existing.get(sid)
            if row is None:
                db.session.add(SpecialClass(student_id=sid, group_id=group.id,
                                            subject_id=subject_id, class_id=class_id))
                outcome.assigned += 1
            elif row.subject_id != subject_id:
                row.subject_id = subject_id
                row.class_id = class_id
                outcome.moved += 1
            else:
                outcome.unchanged += 1
        if outcome.assigned or outcome.moved:
            audit.record(principal, "ASSIGN", ENTITY, group.id, {
                "subject_id": subject_id, "student_ids": ids,
                "assigned": outcome.assigned, "moved": outcome.moved,
            })
    log.info("assigned %d students to %s in group %s (%d new, %d moved)",
             outcome.total, outcome.subject_name, group.id, outcome.assigned, outcome.moved)
    return outcome

def unassign_students(principal, *, student_ids: Iterable[int], group_id: int, class_id: int) -> int:
    """Return students to the group's unassigned pool."""
    principal.require_role(Role.ADMIN.value)
    ids = _student_ids(student_ids)
    group = _group_in_class(group_id, class_id)
    _check_students(ids, class_id)
    with atomic():
        removed = (db.session.query(SpecialClass)
                   .filter(SpecialClass.group_id == group.id, SpecialClass.student_id.in_(ids))
                   .delete(synchronize_session=False))
        if removed:
            audit.record(principal, "UNASSIGN", ENTITY, group.id, {"student_ids": ids, "removed": removed})
    log.info("unassigned %d students from group %s", removed, group.id)
    return removed

def auto_balance_group(principal, group_id: int) -> BalanceOutcome:
    """Spread the group's unassigned students over its subjects.

    Students who already have a subject stay where they are.
    """
    principal.require_role(Role.ADMIN.value)
    group = _get_group(group_id)
    roster = _roster(group.class_id)
    current = _group_roster(group, roster)
    counts = current.counts()

    if not current.unassigned:
        return BalanceOutcome(alt_id=group.id, group_name=group.group_name, assigned=0, counts=counts)

    placements = plan_balance(counts, [st.student_id for st in current.unassigned])
    with atomic():
        # a stale row may exist for a subject that has left the group
        stale = {
            row.student_id: row for row in
            db.session.query(SpecialClass)
            .filter(SpecialClass.group_id == group.id,
                    SpecialClass.student_id.in_([sid for sid, _ in placements]))
            .all()
        }
        for student_id, subject_id in placements:
            row = stale.get(student_id)
            if row is None:
                db.session.add(SpecialClass(student_id=student_id, group_id=group.id,
                                            subject_id=subject_id, class_id=group.class_id))
            else:
                row.subject_id = subject_id
                row.class_id = group.class_id
            counts[subject_id] += 1
        audit.record(principal, "AUTO_BALANCE", ENTITY, group.id, {
            "assigned": len(placements), "counts": {str(k): v for k, v in counts.items()},
        })
    log.info("auto-balanced %d students in group %r", len(placements), group.group_name)
    return BalanceOutcome(alt_id=group.id, group_name=group.group_name,
                          assigned=len(placements), counts=counts)

def auto_balance_all_groups(principal, class_id: int) -> List[GroupBalanceResult]:
    """Balance every group of the class, one transaction per group.

    A failing group is rolled back and reported; groups balanced before it
    stay committed.
    """
    principal.require_role(Role.ADMIN.value)
    klass = _get_class(class_id)
    groups = (db.session.query(SubjectAlternative.id, SubjectAlternative.group_name)
              .filter(SubjectAlternative.class_id == klass.id)
              .order_by(SubjectAlternative.group_name.asc())
              .all())
    if not groups:
        raise NotFoundError("No alternative groups found for this class")

    results: List[GroupBalanceResult] = []
    for alt_id, group_name in groups:
        try:
            out = auto_balance_group(principal, alt_id)
        except AlternativesError as ex:
            db.session.rollback()
            log.warning("auto-balance of group %s failed: %s", alt_id, ex.message)
            results.append(GroupBalanceResult(alt_id=alt_id, group_name=group_name, success=False,
                                              assigned=0, message=ex.message))
            continue
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("auto-balance of group %s failed", alt_id)
            results.append(GroupBalanceResult(alt_id=alt_id, group_name=group_name, success=False,
                                              assigned=0, message="Database error occurred"))
            continue
        msg = (f"{out.assigned} students assigned" if out.assigned
               else "No unassigned students")
        results.append(GroupBalanceResult(alt_id=alt_id, group_name=group_name, success=True,
                                          assigned=out.assigned, message=msg))
    return results
