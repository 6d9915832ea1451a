from __future__ import annotations
import json
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


def _json_list(v):
    # the admin page posts student_ids as a JSON-encoded string
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return []
        try:
            v = json.loads(v)
        except json.JSONDecodeError:
            return [p for p in v.split(",") if p.strip()]
        if not isinstance(v, list):
            return [v]
    return v

# ---------- Alternative groups ----------
class GroupIn(BaseModel):
    class_id: int
    group_name: str = Field(max_length=100)
    subject_ids: List[int] = Field(default_factory=list)

    @field_validator("subject_ids", mode="before")
    @classmethod
    def subjects_from_form(cls, v):
        return _json_list(v)

class GroupUpdateIn(GroupIn):
    alt_id: int

class GroupDeleteIn(BaseModel):
    alt_id: int

class GroupListIn(BaseModel):
    class_id: Optional[int] = None

# ---------- Assignments ----------
class ClassIn(BaseModel):
    class_id: int

class AssignIn(BaseModel):
    student_ids: List[int]
    subject_id: int
    group_id: int
    class_id: int

    @field_validator("student_ids", mode="before")
    @classmethod
    def students_from_form(cls, v):
        return _json_list(v)

class UnassignIn(BaseModel):
    student_ids: List[int]
    group_id: int
    class_id: int

    @field_validator("student_ids", mode="before")
    @classmethod
    def students_from_form(cls, v):
        return _json_list(v)

class BalanceGroupIn(BaseModel):
    group_id: int

# ---------- Out ----------
class SubjectCountOut(BaseModel):
    subject_id: int
    subject_name: str
    students: int

class GroupSummaryOut(BaseModel):
    alt_id: int
    class_id: int
    class_name: str
    group_name: str
    subject_ids: List[int]
    subjects: List[SubjectCountOut]
    total_students: int
    assigned: int
    unassigned: int

class StudentOut(BaseModel):
    student_id: int
    student_name: str
