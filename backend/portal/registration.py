"""Registration state and the pure updates applied to it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional, Tuple

from .grading import CourseTermRecord


@dataclass(frozen=True)
class RegistrationState:
    records: Tuple[CourseTermRecord, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[CourseTermRecord]) -> "RegistrationState":
        return cls(records=tuple(records))

    def find(self, course_code: str) -> Optional[CourseTermRecord]:
        for record in self.records:
            if record.course_code == course_code:
                return record
        return None

    def is_registered(self, course_code: str) -> bool:
        return self.find(course_code) is not None


class RegistrationOutcome(NamedTuple):
    state: RegistrationState
    changed: bool
    message: str
    removed: Tuple[CourseTermRecord, ...] = ()


def register(state: RegistrationState, record: CourseTermRecord) -> RegistrationOutcome:
    if state.is_registered(record.course_code):
        return RegistrationOutcome(
            state, False, f"You are already registered for {record.course_name}."
        )
    new_state = RegistrationState(records=state.records + (record,))
    return RegistrationOutcome(
        new_state, True, f"Successfully registered for {record.course_name}!"
    )


def unregister(state: RegistrationState, course_code: str) -> RegistrationOutcome:
    existing = state.find(course_code)
    if existing is None:
        return RegistrationOutcome(state, False, f"You are not registered for {course_code}.")
    remaining = tuple(r for r in state.records if r.course_code != course_code)
    removed = tuple(r for r in state.records if r.course_code == course_code)
    return RegistrationOutcome(
        RegistrationState(records=remaining),
        True,
        f"Successfully unregistered from {existing.course_name}.",
        removed,
    )


__all__ = ["RegistrationOutcome", "RegistrationState", "register", "unregister"]
