from __future__ import annotations
import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app import create_app
from extensions import db
from models import AuditLog, SchoolClass, SpecialClass, Student, Subject, SubjectAlternative
from blueprints.admin import audit
from blueprints.alternatives import registry
from blueprints.alternatives.errors import NotFoundError, ValidationError
from blueprints.auth.principal import Principal

ADMIN = Principal(user_id=1, role="ADMIN")

@pytest.fixture()
def app():
    app = create_app("dev")
    app.config.update(TESTING=True)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def school(app):
    klass = SchoolClass(name="SS2A", level="SS2")
    other = SchoolClass(name="SS2B", level="SS2")
    db.session.add_all([klass, other])
    subjects = [Subject(name=n) for n in ("Computing", "Biology", "French", "Music", "Art")]
    db.session.add_all(subjects)
    db.session.flush()
    students = [Student(first_name=f"S{i:02d}", last_name="Test", class_id=klass.id) for i in range(6)]
    db.session.add_all(students)
    db.session.commit()
    return {
        "class": klass.id, "other": other.id,
        "subjects": {s.name: s.id for s in subjects},
        "students": [s.id for s in students],
    }

def _create(school, name="Science", subjects=("Computing", "Biology")):
    return registry.create_group(ADMIN, class_id=school["class"], group_name=name,
                                 subject_ids=[school["subjects"][n] for n in subjects])

def _assign(group, subject_id, student_ids):
    for sid in student_ids:
        db.session.add(SpecialClass(student_id=sid, group_id=group.id, subject_id=subject_id,
                                    class_id=group.class_id))
    db.session.commit()

# ---- create ----
def test_create_group_persists_and_audits(school):
    g = _create(school)
    row = db.session.get(SubjectAlternative, g.id)
    assert row.group_name == "Science"
    assert row.subject_ids.to_list() == [school["subjects"]["Computing"], school["subjects"]["Biology"]]
    log = AuditLog.query.filter_by(entity="subject_alternative", entity_id=g.id).one()
    assert log.action == "CREATE" and log.user_id == 1

def test_create_with_one_subject_is_rejected(school):
    with pytest.raises(ValidationError) as ei:
        registry.create_group(ADMIN, class_id=school["class"], group_name="Solo",
                              subject_ids=[school["subjects"]["Computing"]])
    assert "At least 2 subjects" in ei.value.message
    assert SubjectAlternative.query.count() == 0

def test_create_trims_name_and_requires_one(school):
    g = _create(school, name="  Science  ")
    assert g.group_name == "Science"
    with pytest.raises(ValidationError):
        _create(school, name="   ", subjects=("French", "Music"))

def test_create_unknown_class(school):
    with pytest.raises(NotFoundError) as ei:
        registry.create_group(ADMIN, class_id=9999, group_name="X",
                              subject_ids=list(school["subjects"].values())[:2])
    assert ei.value.message == "Invalid class selected"

def test_create_unknown_subject(school):
    with pytest.raises(NotFoundError) as ei:
        registry.create_group(ADMIN, class_id=school["class"], group_name="X",
                              subject_ids=[school["subjects"]["Computing"], 9999])
    assert ei.value.message == "One or more invalid subjects selected"

def test_duplicate_name_in_class_is_rejected(school):
    _create(school)
    with pytest.raises(ValidationError) as ei:
        _create(school, name="science", subjects=("French", "Music"))
    assert "already exists" in ei.value.message

def test_same_name_in_another_class_is_fine(school):
    _create(school)
    g = registry.create_group(ADMIN, class_id=school["other"], group_name="Science",
                              subject_ids=[school["subjects"]["Computing"], school["subjects"]["Biology"]])
    assert g.class_id == school["other"]

def test_subject_already_in_another_group(school):
    _create(school)
    with pytest.raises(ValidationError) as ei:
        _create(school, name="Languages", subjects=("French", "Biology"))
    assert ei.value.message == "These subjects are already in other groups: Biology (in Science)"

def test_non_admin_is_refused(school):
    teacher = Principal(user_id=2, role="TEACHER")
    with pytest.raises(PermissionError):
        registry.create_group(teacher, class_id=school["class"], group_name="X",
                              subject_ids=[school["subjects"]["Computing"], school["subjects"]["Biology"]])
    with pytest.raises(PermissionError):
        registry.list_groups(Principal(user_id=None, role=""))

# ---- update ----
def test_update_renames_and_changes_subjects(school):
    g = _create(school)
    subj = school["subjects"]
    out = registry.update_group(ADMIN, alt_id=g.id, class_id=school["class"], group_name="Sciences",
                                subject_ids=[subj["Biology"], subj["Computing"], subj["Art"]])
    assert out.released == 0
    row = db.session.get(SubjectAlternative, g.id)
    assert row.group_name == "Sciences"
    assert row.subject_ids.to_list() == [subj["Biology"], subj["Computing"], subj["Art"]]

def test_update_may_keep_its_own_name_and_subjects(school):
    g = _create(school)
    out = registry.update_group(ADMIN, alt_id=g.id, class_id=school["class"], group_name="Science",
                                subject_ids=g.subject_ids.to_list())
    assert out.group.id == g.id

def test_update_releases_assignments_of_removed_subject(school):
    g = _create(school)
    subj = school["subjects"]
    st = school["students"]
    _assign(g, subj["Computing"], st[:2])
    _assign(g, subj["Biology"], st[2:5])

    out = registry.update_group(ADMIN, alt_id=g.id, class_id=school["class"], group_name="Science",
                                subject_ids=[subj["Biology"], subj["Art"]])
    assert out.released == 2
    rows = SpecialClass.query.filter_by(group_id=g.id).all()
    assert sorted(r.student_id for r in rows) == st[2:5]
    assert {r.subject_id for r in rows} == {subj["Biology"]}

def test_update_to_another_class_releases_everything(school):
    g = _create(school)
    _assign(g, school["subjects"]["Computing"], school["students"][:3])
    out = registry.update_group(ADMIN, alt_id=g.id, class_id=school["other"], group_name="Science",
                                subject_ids=g.subject_ids.to_list())
    assert out.released == 3
    assert SpecialClass.query.filter_by(group_id=g.id).count() == 0

def test_update_missing_group(school):
    with pytest.raises(NotFoundError):
        registry.update_group(ADMIN, alt_id=404, class_id=school["class"], group_name="X",
                              subject_ids=[school["subjects"]["Computing"], school["subjects"]["Biology"]])

def test_update_invalid_input_changes_nothing(school):
    g = _create(school)
    with pytest.raises(ValidationError):
        registry.update_group(ADMIN, alt_id=g.id, class_id=school["class"], group_name="Science",
                              subject_ids=[school["subjects"]["Computing"]])
    assert len(db.session.get(SubjectAlternative, g.id).subject_ids) == 2

# ---- delete ----
def test_delete_cascades_assignments(school):
    g = _create(school)
    _assign(g, school["subjects"]["Computing"], school["students"][:4])
    _assign(g, school["subjects"]["Biology"], school["students"][4:6])
    gid = g.id
    out = registry.delete_group(ADMIN, gid)
    assert out.removed_assignments == 6
    assert db.session.get(SubjectAlternative, gid) is None
    assert SpecialClass.query.count() == 0
    with pytest.raises(NotFoundError):
        registry.delete_group(ADMIN, gid)

def _failing_audit(monkeypatch):
    def record(*args, **kwargs):
        raise OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))
    monkeypatch.setattr(audit, "record", record)

def test_delete_failure_keeps_group_and_assignments(school, monkeypatch):
    g = _create(school)
    _assign(g, school["subjects"]["Computing"], school["students"][:4])
    gid = g.id
    _failing_audit(monkeypatch)
    with pytest.raises(SQLAlchemyError):
        registry.delete_group(ADMIN, gid)
    assert db.session.get(SubjectAlternative, gid) is not None
    assert SpecialClass.query.filter_by(group_id=gid).count() == 4

def test_update_failure_keeps_released_assignments(school, monkeypatch):
    g = _create(school)
    subj = school["subjects"]
    _assign(g, subj["Computing"], school["students"][:2])
    gid = g.id
    _failing_audit(monkeypatch)
    with pytest.raises(SQLAlchemyError):
        registry.update_group(ADMIN, alt_id=gid, class_id=school["class"], group_name="Renamed",
                              subject_ids=[subj["Biology"], subj["Art"]])
    row = db.session.get(SubjectAlternative, gid)
    assert row.group_name == "Science"
    assert row.subject_ids.to_list() == [subj["Computing"], subj["Biology"]]
    assert SpecialClass.query.filter_by(group_id=gid, subject_id=subj["Computing"]).count() == 2

def test_delete_leaves_other_groups_alone(school):
    g1 = _create(school)
    g2 = _create(school, name="Creative", subjects=("Music", "Art"))
    _assign(g2, school["subjects"]["Music"], school["students"][:2])
    registry.delete_group(ADMIN, g1.id)
    assert SpecialClass.query.filter_by(group_id=g2.id).count() == 2

# ---- list ----
def test_list_groups_with_counts(school):
    g = _create(school)
    _create(school, name="Creative", subjects=("Music", "Art"))
    _assign(g, school["subjects"]["Computing"], school["students"][:2])
    _assign(g, school["subjects"]["Biology"], school["students"][2:3])

    groups = registry.list_groups(ADMIN, school["class"])
    assert [x.group_name for x in groups] == ["Creative", "Science"]
    science = groups[1]
    assert [(c.subject_name, c.students) for c in science.subjects] == [("Computing", 2), ("Biology", 1)]
    assert (science.total_students, science.assigned, science.unassigned) == (6, 3, 3)

def test_list_filters_by_class(school):
    _create(school)
    assert registry.list_groups(ADMIN, school["other"]) == []
    assert len(registry.list_groups(ADMIN)) == 1
