from __future__ import annotations
import logging

from flask import Blueprint, jsonify, request

from blueprints.auth.routes import admin_required
from . import services
from .schemas import ClassOut, StudentOut, SubjectOut

log = logging.getLogger(__name__)

api_bp = Blueprint("directory_api", __name__)

def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes", "on")

# ----------------------- Lookups for the admin screens -----------------------
@api_bp.get("/classes")
@admin_required
def classes_list():
    rows = services.list_classes(with_alternatives=_flag("with_alternatives"))
    return jsonify({"success": True, "message": f"{len(rows)} class(es)",
                    "items": [ClassOut.model_validate(r).model_dump(mode="json") for r in rows]})

@api_bp.get("/subjects")
@admin_required
def subjects_list():
    rows = services.list_subjects(request.args.get("q"))
    items = [SubjectOut.model_validate({"id": s.id, "name": s.name, "code": s.code}).model_dump(mode="json")
             for s in rows]
    return jsonify({"success": True, "message": f"{len(items)} subject(s)", "items": items})

@api_bp.get("/classes/<int:class_id>/students")
@admin_required
def class_students(class_id: int):
    try:
        rows = services.class_students(class_id)
    except services.ClassNotFound:
        return jsonify({"success": False, "message": "Class not found"}), 404
    items = [StudentOut.model_validate({"id": s.id, "first_name": s.first_name,
                                        "last_name": s.last_name, "full_name": s.full_name}).model_dump(mode="json")
             for s in rows]
    return jsonify({"success": True, "message": f"{len(items)} student(s)", "items": items})
