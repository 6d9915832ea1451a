from __future__ import annotations
import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import Program, SchoolClass, Student, Subject, SubjectAlternative, SubjectSet, User

def _login_admin(client):
    if not User.query.filter_by(email="admin@example.com").first():
        db.session.add(User(email="admin@example.com", role="ADMIN", password_hash=generate_password_hash("pass")))
        db.session.commit()
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "pass"})
    assert r.status_code == 200, r.get_json()

@pytest.fixture()
def client():
    app = create_app("dev")
    app.config.update(TESTING=True)
    with app.app_context():
        db.create_all()
        program = Program(name="Senior Secondary")
        db.session.add(program)
        db.session.flush()
        a = SchoolClass(name="SS1A", level="SS1", program_id=program.id)
        b = SchoolClass(name="SS1B", level="SS1")
        db.session.add_all([a, b, Subject(name="Physics", code="PHY"), Subject(name="Chemistry", code="CHEM")])
        db.session.flush()
        db.session.add_all([
            Student(first_name="Zainab", last_name="Ali", class_id=a.id),
            Student(first_name="Ade", last_name="Kola", class_id=a.id),
            Student(first_name="Bisi", last_name="Ojo", class_id=b.id),
        ])
        ids = [s.id for s in Subject.query.all()]
        db.session.add(SubjectAlternative(class_id=a.id, group_name="Sciences", subject_ids=SubjectSet(tuple(ids))))
        db.session.commit()
        with app.test_client() as c:
            _login_admin(c)
            yield c
        db.session.remove()
        db.drop_all()

def test_classes(client):
    r = client.get("/api/v1/classes")
    assert r.status_code == 200
    items = r.get_json()["items"]
    assert [c["name"] for c in items] == ["SS1A", "SS1B"]
    assert items[0]["program_name"] == "Senior Secondary"
    assert items[0]["groups"] == 1
    assert items[1]["program_name"] is None and items[1]["groups"] == 0

def test_classes_with_alternatives_only(client):
    r = client.get("/api/v1/classes?with_alternatives=1")
    assert [c["name"] for c in r.get_json()["items"]] == ["SS1A"]

def test_subjects_sorted_and_searchable(client):
    r = client.get("/api/v1/subjects")
    assert [s["name"] for s in r.get_json()["items"]] == ["Chemistry", "Physics"]
    r = client.get("/api/v1/subjects?q=PHY")
    assert [s["code"] for s in r.get_json()["items"]] == ["PHY"]

def test_class_students(client):
    klass = SchoolClass.query.filter_by(name="SS1A").one()
    r = client.get(f"/api/v1/classes/{klass.id}/students")
    assert r.status_code == 200
    assert [s["full_name"] for s in r.get_json()["items"]] == ["Ade Kola", "Zainab Ali"]

def test_class_students_unknown_class(client):
    r = client.get("/api/v1/classes/999/students")
    assert r.status_code == 404
    assert r.get_json()["success"] is False
