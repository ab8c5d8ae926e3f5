"""Registration state updates."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from portal.grading import CourseTermRecord  # noqa: E402
from portal.registration import RegistrationState, register, unregister  # noqa: E402

ALGORITHMS = CourseTermRecord("CS301", "Algorithms", 2025, "Fall", section_id="CS301-01")
GENETICS = CourseTermRecord("BIO301", "Genetics", 2025, "Fall", section_id="BIO301-01")


class RegisterTestCase(unittest.TestCase):
    def test_register_appends_course(self) -> None:
        state = RegistrationState.from_records([GENETICS])

        outcome = register(state, ALGORITHMS)

        self.assertTrue(outcome.changed)
        self.assertEqual((GENETICS, ALGORITHMS), outcome.state.records)
        self.assertEqual("Successfully registered for Algorithms!", outcome.message)
        self.assertEqual((GENETICS,), state.records)

    def test_register_refuses_duplicate_course(self) -> None:
        state = RegistrationState.from_records([ALGORITHMS])
        other_section = CourseTermRecord("CS301", "Algorithms", 2025, "Fall", section_id="CS301-02")

        outcome = register(state, other_section)

        self.assertFalse(outcome.changed)
        self.assertIs(state, outcome.state)
        self.assertEqual("You are already registered for Algorithms.", outcome.message)


class UnregisterTestCase(unittest.TestCase):
    def test_unregister_removes_course(self) -> None:
        state = RegistrationState.from_records([ALGORITHMS, GENETICS])

        outcome = unregister(state, "CS301")

        self.assertTrue(outcome.changed)
        self.assertEqual((GENETICS,), outcome.state.records)
        self.assertEqual("Successfully unregistered from Algorithms.", outcome.message)
        self.assertEqual((ALGORITHMS,), outcome.removed)

    def test_unregister_unknown_course(self) -> None:
        state = RegistrationState.from_records([GENETICS])

        outcome = unregister(state, "CS301")

        self.assertFalse(outcome.changed)
        self.assertIs(state, outcome.state)
        self.assertFalse(outcome.state.is_registered("CS301"))


if __name__ == "__main__":
    unittest.main()
