from __future__ import annotations
from flask import Blueprint, jsonify, request
from sqlalchemy import func

from extensions import db
from models import AuditLog, SchoolClass, SpecialClass, Student, Subject, SubjectAlternative
from blueprints.auth.routes import admin_required

api_bp = Blueprint("admin_api", __name__)

# ---------- API (dashboard summary) ----------
@api_bp.get("/admin/dashboard/summary")
@admin_required
def dashboard_summary():
    classes = db.session.query(SchoolClass).count()
    subjects = db.session.query(Subject).count()
    students = db.session.query(Student).count()
    groups = db.session.query(SubjectAlternative).count()

    # open choices: (group, student on the class roster) pairs without an assignment
    slots = (db.session.query(func.count(Student.id))
             .select_from(Student)
             .join(SubjectAlternative, SubjectAlternative.class_id == Student.class_id)
             .scalar()) or 0
    filled = (db.session.query(func.count(SpecialClass.id))
              .select_from(SpecialClass)
              .join(Student, Student.id == SpecialClass.student_id)
              .join(SubjectAlternative, SubjectAlternative.id == SpecialClass.group_id)
              .filter(Student.class_id == SubjectAlternative.class_id)
              .scalar()) or 0

    return jsonify({
        "success": True,
        "message": "Dashboard summary",
        "counters": {"classes": classes, "subjects": subjects, "students": students,
                     "alternative_groups": groups, "open_choices": max(slots - filled, 0)},
    })

# quick look at the audit trail
@api_bp.get("/admin/audit-logs")
@admin_required
def audit_logs():
    limit = min(200, max(1, request.args.get("limit", 50, type=int)))
    q = db.session.query(AuditLog)
    entity = request.args.get("entity")
    if entity:
        q = q.filter(AuditLog.entity == entity)
    rows = q.order_by(AuditLog.id.desc()).limit(limit).all()
    return jsonify({"success": True, "message": f"{len(rows)} entries", "items": [
        {"id": a.id, "user_id": a.user_id, "action": a.action, "entity": a.entity,
         "entity_id": a.entity_id, "payload": a.payload, "created_at": a.created_at.isoformat()}
        for a in rows
    ]})
