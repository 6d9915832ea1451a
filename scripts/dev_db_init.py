# scripts/dev_db_init.py
"""Create the tables and a minimal data set for a quick local run."""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir)))

from app import create_app          # noqa: E402
from extensions import db           # noqa: E402
from models import SchoolClass, Student, Subject, User  # noqa: E402

def seed_minimal():
    klass = SchoolClass.query.filter_by(name="JSS1").first()
    if not klass:
        klass = SchoolClass(name="JSS1", level="JSS1")
        db.session.add(klass)
        db.session.flush()

    for name in ("History", "Geography", "Economics"):
        if not Subject.query.filter_by(name=name).first():
            db.session.add(Subject(name=name))

    for first, last in (("Ayo", "Bakare"), ("Ngozi", "Okafor"), ("Tunde", "Adebayo")):
        if not Student.query.filter_by(first_name=first, last_name=last, class_id=klass.id).first():
            db.session.add(Student(first_name=first, last_name=last, class_id=klass.id))

    # admin for logging in
    if not User.query.filter_by(email="admin@example.com").first():
        u = User(email="admin@example.com", role="ADMIN")
        u.set_password("pass")
        db.session.add(u)

    db.session.commit()

if __name__ == "__main__":
    app = create_app("dev")
    with app.app_context():
        db.create_all()
        seed_minimal()
        print("DB initialized and seeded")
