from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Iterable, Iterator

from sqlalchemy.types import Text, TypeDecorator

MIN_SUBJECTS = 2


@dataclass(frozen=True)
class SubjectSet:
    """Ordered set of subject ids making up one alternative group.

    The order is the one the admin picked; it is the column order on the
    assignment screen.
    """
    ids: tuple[int, ...]

    @classmethod
    def parse(cls, values: Iterable) -> "SubjectSet":
        if values is None or isinstance(values, (str, bytes)):
            raise ValueError("Subjects must be given as a list of ids")
        ids: list[int] = []
        for v in values:
            if isinstance(v, bool):
                raise ValueError(f"Invalid subject id: {v!r}")
            try:
                sid = int(v)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid subject id: {v!r}") from None
            if sid in ids:
                raise ValueError("The same subject was selected more than once")
            ids.append(sid)
        if len(ids) < MIN_SUBJECTS:
            raise ValueError("At least 2 subjects must be selected for an alternative group")
        return cls(tuple(ids))

    def __iter__(self) -> Iterator[int]:
        return iter(self.ids)

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, subject_id) -> bool:
        return subject_id in self.ids

    def to_list(self) -> list[int]:
        return list(self.ids)


class SubjectSetType(TypeDecorator):
    """Stores a SubjectSet as a JSON array in a text column."""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, SubjectSet):
            value = SubjectSet.parse(value)
        return json.dumps(value.to_list())

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        # rows written by older tooling may hold ids as strings
        return SubjectSet(tuple(int(v) for v in json.loads(value)))
