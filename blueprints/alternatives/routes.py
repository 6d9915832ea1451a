# blueprints/alternatives/routes.py
from __future__ import annotations
import logging
from dataclasses import asdict
from functools import wraps
from typing import Any, Callable, Dict

from flask import Blueprint, jsonify, request
from pydantic import BaseModel, ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from blueprints.auth.routes import admin_required, current_principal
from . import engine, registry
from .errors import AlternativesError
from .schemas import (
    AssignIn, BalanceGroupIn, ClassIn,
    GroupDeleteIn, GroupIn, GroupListIn, GroupSummaryOut, GroupUpdateIn,
    StudentOut, UnassignIn,
)

log = logging.getLogger(__name__)

api_bp = Blueprint("alternatives_api", __name__)

# ----------------------- Helpers -----------------------
def envelope(success: bool, message: str, status: int = 200, **extra):
    body: Dict[str, Any] = {"success": success, "message": message}
    body.update(extra)
    return jsonify(body), status

def _payload() -> Dict[str, Any]:
    """JSON body, or the form the admin pages post (``subject_ids[]`` lists)."""
    js = request.get_json(silent=True)
    if isinstance(js, dict):
        return js
    data: Dict[str, Any] = {}
    for key in request.form:
        values = request.form.getlist(key)
        if key.endswith("[]"):
            data[key[:-2]] = values
        else:
            data[key] = values if len(values) > 1 else values[0]
    return data

def _parse(schema: type[BaseModel], data: Dict[str, Any]):
    try:
        return schema.model_validate(data)
    except SchemaError as ve:
        fields = sorted({".".join(str(p) for p in e["loc"]) or "body" for e in ve.errors()})
        raise _BadInput("Invalid or missing fields: " + ", ".join(fields)) from ve

class _BadInput(Exception):
    pass

def json_errors(fn: Callable):
    """Map service errors onto the {success, message} envelope."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except _BadInput as ex:
            return envelope(False, str(ex), 400)
        except AlternativesError as ex:
            return envelope(False, ex.message, ex.http_status, code=ex.code)
        except PermissionError:
            return envelope(False, "Access denied", 403)
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("subject alternatives: database error")
            return envelope(False, "Database error occurred. Please try again.", 500)
    return wrapper

def _summary_json(summary: registry.GroupSummary) -> Dict[str, Any]:
    return GroupSummaryOut.model_validate(asdict(summary)).model_dump(mode="json")

def _students_json(students) -> list[dict]:
    return [StudentOut.model_validate(asdict(s)).model_dump() for s in students]

# ----------------------- Alternative groups -----------------------
@api_bp.get("/subject-alternatives")
@admin_required
@json_errors
def groups_list():
    params = _parse(GroupListIn, {"class_id": request.args.get("class_id") or None})
    groups = registry.list_groups(current_principal(), params.class_id)
    return envelope(True, f"{len(groups)} alternative group(s)",
                    groups=[_summary_json(g) for g in groups])

@api_bp.post("/subject-alternatives")
@admin_required
@json_errors
def groups_action():
    data = _payload()
    action = str(data.get("action") or "").strip()
    principal = current_principal()

    if action == "create":
        p = _parse(GroupIn, data)
        group = registry.create_group(principal, class_id=p.class_id, group_name=p.group_name,
                                      subject_ids=p.subject_ids)
        return envelope(True, f"Alternative group '{group.group_name}' created successfully",
                        201, alt_id=group.id)

    if action == "update":
        p = _parse(GroupUpdateIn, data)
        out = registry.update_group(principal, alt_id=p.alt_id, class_id=p.class_id,
                                    group_name=p.group_name, subject_ids=p.subject_ids)
        msg = f"Alternative group '{out.group.group_name}' updated successfully"
        if out.released:
            msg += f"; {out.released} student(s) returned to unassigned"
        return envelope(True, msg, alt_id=out.group.id, released=out.released)

    if action == "delete":
        p = _parse(GroupDeleteIn, data)
        out = registry.delete_group(principal, p.alt_id)
        return envelope(True, f"Alternative group '{out.group_name}' deleted successfully",
                        removed_assignments=out.removed_assignments)

    return envelope(False, "Invalid action", 400)

# ----------------------- Assignments -----------------------
def _load(principal, data):
    p = _parse(ClassIn, data)
    view = engine.load_assignments(principal, p.class_id)
    return envelope(
        True, "Assignments loaded",
        groups=[{"alt_id": g.alt_id, "group_name": g.group_name, "class_id": view.class_id,
                 "subject_ids": g.subject_ids} for g in view.groups],
        students=_students_json(view.students),
        assignments={str(g.alt_id): {str(sid): _students_json(sts) for sid, sts in g.by_subject.items()}
                     for g in view.groups},
        unassigned_by_group={str(g.alt_id): _students_json(g.unassigned) for g in view.groups},
        unassigned=_students_json(view.unassigned),
    )

def _assign(principal, data):
    p = _parse(AssignIn, data)
    out = engine.assign_students(principal, student_ids=p.student_ids, subject_id=p.subject_id,
                                 group_id=p.group_id, class_id=p.class_id)
    return envelope(True, f"Successfully assigned {out.total} students",
                    assigned=out.assigned, moved=out.moved, unchanged=out.unchanged)

def _unassign(principal, data):
    p = _parse(UnassignIn, data)
    removed = engine.unassign_students(principal, student_ids=p.student_ids,
                                       group_id=p.group_id, class_id=p.class_id)
    return envelope(True, f"{removed} student(s) returned to unassigned", removed=removed)

def _balance_group(principal, data):
    p = _parse(BalanceGroupIn, data)
    out = engine.auto_balance_group(principal, p.group_id)
    if not out.assigned:
        msg = "No unassigned students found for this group"
    else:
        msg = f"Successfully auto-balanced {out.assigned} students across {len(out.counts)} subjects"
    return envelope(True, msg, assigned=out.assigned,
                    counts={str(k): v for k, v in out.counts.items()})

def _balance_all(principal, data):
    p = _parse(ClassIn, data)
    results = engine.auto_balance_all_groups(principal, p.class_id)
    total = sum(r.assigned for r in results)
    failed = [r for r in results if not r.success]
    msg = f"Auto-balanced all groups: {total} students assigned across {len(results)} alternative groups"
    if failed:
        msg += f"; {len(failed)} group(s) failed: " + ", ".join(r.group_name for r in failed)
    return envelope(not failed, msg, assigned=total, results=[asdict(r) for r in results])

ASSIGNMENT_ACTIONS = {
    "load_assignments": _load,
    "assign_students": _assign,
    "unassign_students": _unassign,
    "auto_balance_group": _balance_group,
    "auto_balance_all": _balance_all,
}

@api_bp.post("/subject-assignments")
@admin_required
@json_errors
def assignments_action():
    data = _payload()
    handler = ASSIGNMENT_ACTIONS.get(str(data.get("action") or "").strip())
    if handler is None:
        return envelope(False, "Invalid action", 400)
    return handler(current_principal(), data)
