"""
Idempotent seed script.
Usage:
  python seed.py --reset         # drop and recreate the database, demo data, admin user
  python seed.py --ensure-admin  # only create the admin user (admin@example.com / pass)
  python seed.py                 # fill in whatever demo data is missing
"""
import argparse
import logging

from app import create_app
from extensions import db
from models import Program, SchoolClass, Student, Subject, SubjectAlternative, User
from blueprints.alternatives import registry
from blueprints.auth.principal import Principal

log = logging.getLogger("seed")

DEMO_SUBJECTS = [
    ("Mathematics", "MATH"), ("English", "ENG"),
    ("Biology", "BIO"), ("Chemistry", "CHEM"), ("Physics", "PHY"),
    ("French", "FRE"), ("Music", "MUS"), ("Fine Art", "ART"),
]
DEMO_CLASSES = [("SS1A", "SS1"), ("SS1B", "SS1")]
DEMO_STUDENTS = [
    ("Ada", "Obi"), ("Bola", "Ade"), ("Chidi", "Eze"), ("Dayo", "Ojo"),
    ("Efe", "Igho"), ("Funke", "Bello"), ("Gbenga", "Alli"), ("Halima", "Musa"),
]
# group name -> subject names, created for every demo class
DEMO_GROUPS = {
    "Science Elective": ["Biology", "Chemistry", "Physics"],
    "Arts Elective": ["French", "Music", "Fine Art"],
}

def get_or_create(model, defaults=None, **by):
    """Find by the unique keys, or create."""
    inst = db.session.query(model).filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True

def seed_directory():
    program, _ = get_or_create(Program, name="Senior Secondary")
    subjects = {name: get_or_create(Subject, {"code": code}, name=name)[0] for name, code in DEMO_SUBJECTS}
    classes = []
    for name, level in DEMO_CLASSES:
        klass, _ = get_or_create(SchoolClass, {"level": level, "program_id": program.id}, name=name)
        classes.append(klass)
        for first, last in DEMO_STUDENTS:
            get_or_create(Student, first_name=first, last_name=last, class_id=klass.id)
    db.session.commit()
    return classes, subjects

def seed_groups(classes, subjects):
    principal = Principal.system()
    created = 0
    for klass in classes:
        for group_name, names in DEMO_GROUPS.items():
            exists = (db.session.query(SubjectAlternative)
                      .filter_by(class_id=klass.id, group_name=group_name).first())
            if exists:
                continue
            registry.create_group(principal, class_id=klass.id, group_name=group_name,
                                  subject_ids=[subjects[n].id for n in names])
            created += 1
    return created

def ensure_admin():
    if db.session.query(User).filter_by(email="admin@example.com").first():
        return False
    u = User(email="admin@example.com", role="ADMIN")
    u.set_password("pass")
    db.session.add(u)
    db.session.commit()
    return True

# ---- main ----
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full demo seed")
    parser.add_argument("--ensure-admin", action="store_true", help="create only the admin user")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    app = create_app()
    with app.app_context():
        if args.ensure_admin:
            db.create_all()
            created = ensure_admin()
            log.info("admin %s", "created" if created else "already exists")
            return

        if args.reset:
            db.drop_all()
        db.create_all()
        classes, subjects = seed_directory()
        groups = seed_groups(classes, subjects)
        ensure_admin()
        log.info("%s seed complete: %d class(es), %d new alternative group(s)",
                 "reset+" if args.reset else "soft", len(classes), groups)

if __name__ == "__main__":
    main()
