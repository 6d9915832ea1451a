from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field

# ---------- Classes ----------
class ClassOut(BaseModel):
    id: int
    name: str
    level: Optional[str] = None
    program_name: Optional[str] = None
    groups: int = 0

# ---------- Subjects ----------
class SubjectOut(BaseModel):
    id: int
    name: str
    code: Optional[str] = Field(None, max_length=50)

# ---------- Students ----------
class StudentOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
