"""Grade aggregation, term grouping and deduplication."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from portal.grading import (  # noqa: E402
    CourseTermRecord,
    SubScoreSet,
    TermBucket,
    TermKey,
    aggregate,
    classify,
    dedupe_by_course,
    flatten_buckets,
    group_by_term,
    ongoing_records,
    overall_average,
    previous_term,
    recency_key,
    round_grade,
    term_order,
    term_records,
    yearly_averages,
)


def _record(code, year, term, grade, name=None):
    return CourseTermRecord(
        course_code=code,
        course_name=name or code,
        year=year,
        term=term,
        overall_grade=grade,
    )


class AggregateTestCase(unittest.TestCase):
    def test_mean_of_all_sub_scores(self) -> None:
        scores = SubScoreSet(midterm=4, project=5, final=4, quizzes=4)
        self.assertEqual(4.25, aggregate(scores))

    def test_only_available_sub_scores_count(self) -> None:
        self.assertEqual(5.0, aggregate(SubScoreSet(midterm=5)))
        self.assertEqual(3.67, aggregate(SubScoreSet(midterm=3, project=4, final=4)))

    def test_no_sub_scores_is_not_available(self) -> None:
        self.assertIsNone(aggregate(SubScoreSet()))
        self.assertIsNone(aggregate(None))

    def test_rounding_halves_go_up(self) -> None:
        self.assertEqual(4.63, round_grade(4.625))
        self.assertEqual(2.13, round_grade(2.125))
        # 1.005 is stored as 1.00499..., so it rounds down.
        self.assertEqual(1.0, round_grade(1.005))


class ClassifyTestCase(unittest.TestCase):
    def test_tier_boundaries_are_inclusive(self) -> None:
        cases = [
            (6.0, "top"),
            (5.5, "top"),
            (5.49, "high"),
            (4.5, "high"),
            (3.5, "mid-high"),
            (2.5, "mid"),
            (1.5, "low"),
            (1.0, "lowest"),
        ]
        for grade, tier in cases:
            with self.subTest(grade=grade):
                self.assertEqual(tier, classify(grade))

    def test_not_available_and_sub_one_are_undefined(self) -> None:
        self.assertEqual("undefined", classify(None))
        self.assertEqual("undefined", classify(0.99))


class TermOrderTestCase(unittest.TestCase):
    def test_higher_year_is_more_recent(self) -> None:
        self.assertLess(term_order((2025, "Spring"), (2023, "Fall")), 0)
        self.assertGreater(term_order((2023, "Fall"), (2025, "Spring")), 0)

    def test_fall_is_later_than_spring(self) -> None:
        self.assertLess(term_order(TermKey(2024, "Fall"), TermKey(2024, "Spring")), 0)

    def test_same_term_compares_equal(self) -> None:
        self.assertEqual(0, term_order((2024, "Fall"), TermKey(2024, "Fall")))

    def test_unknown_term_ranks_before_spring(self) -> None:
        self.assertLess(recency_key(2024, "Summer"), recency_key(2024, "Spring"))

    def test_previous_term(self) -> None:
        self.assertEqual(TermKey(2025, "Spring"), previous_term(TermKey(2025, "Fall")))
        self.assertEqual(TermKey(2024, "Fall"), previous_term(TermKey(2025, "Spring")))


class GroupByTermTestCase(unittest.TestCase):
    def test_buckets_most_recent_first_without_ungraded(self) -> None:
        records = [
            _record("CS202", 2025, "Spring", 5.0),
            _record("CS202", 2025, "Fall", None),
            _record("HIST101", 2023, "Fall", 4.0),
        ]

        buckets = group_by_term(records)

        self.assertEqual(
            [
                TermBucket(2025, "Spring", [records[0]]),
                TermBucket(2023, "Fall", [records[2]]),
            ],
            buckets,
        )

    def test_fall_bucket_precedes_spring_of_same_year(self) -> None:
        records = [
            _record("MATH101", 2024, "Spring", 4.25),
            _record("MATH201", 2024, "Fall", 3.25),
        ]
        self.assertEqual(
            [TermKey(2024, "Fall"), TermKey(2024, "Spring")],
            [bucket.term_key for bucket in group_by_term(records)],
        )

    def test_courses_sorted_by_name_ignoring_case_and_accents(self) -> None:
        records = [
            _record("C", 2024, "Fall", 4.0, name="calculus"),
            _record("E", 2024, "Fall", 4.0, name="Électronique"),
            _record("A", 2024, "Fall", 4.0, name="Algorithms"),
            _record("B", 2024, "Fall", 4.0, name="Biology"),
        ]

        (bucket,) = group_by_term(records)

        self.assertEqual(["A", "B", "C", "E"], [r.course_code for r in bucket.records])

    def test_equal_names_keep_input_order(self) -> None:
        first = _record("PHYS1", 2024, "Fall", 4.0, name="Physics I")
        second = _record("PHYS2", 2024, "Fall", 5.0, name="Physics I")

        (bucket,) = group_by_term([first, second])

        self.assertEqual([first, second], bucket.records)

    def test_regrouping_flattened_buckets_is_stable(self) -> None:
        records = [
            _record("LIT101", 2023, "Fall", 5.25, name="World Literature"),
            _record("MATH101", 2024, "Spring", 4.25, name="Calculus I"),
            _record("HIST101", 2023, "Fall", 4.25, name="Intro to History"),
            _record("PHY101", 2024, "Spring", 3.5, name="Physics I"),
        ]

        buckets = group_by_term(records)

        self.assertEqual(buckets, group_by_term(flatten_buckets(buckets)))

    def test_empty_input(self) -> None:
        self.assertEqual([], group_by_term([]))


class DedupeByCourseTestCase(unittest.TestCase):
    def test_keeps_fall_over_spring_of_same_year(self) -> None:
        spring = _record("MATH101", 2024, "Spring", 3.0)
        fall = _record("MATH101", 2024, "Fall", 4.0)

        self.assertEqual([fall], dedupe_by_course([spring, fall]))

    def test_tie_keeps_first_record(self) -> None:
        first = _record("CS101", 2024, "Fall", 3.0)
        second = _record("CS101", 2024, "Fall", 5.0)

        self.assertEqual([first], dedupe_by_course([first, second]))

    def test_output_follows_first_appearance(self) -> None:
        old_a = _record("A", 2023, "Fall", 3.0)
        b = _record("B", 2024, "Spring", 4.0)
        new_a = _record("A", 2025, "Spring", None)

        self.assertEqual([new_a, b], dedupe_by_course([old_a, b, new_a]))


class AverageTestCase(unittest.TestCase):
    def test_overall_average(self) -> None:
        records = [
            _record("A", 2024, "Fall", 4.25),
            _record("B", 2024, "Fall", 5.0),
            _record("C", 2025, "Fall", None),
        ]
        self.assertEqual(4.63, overall_average(records))

    def test_overall_average_without_grades(self) -> None:
        self.assertIsNone(overall_average([]))
        self.assertIsNone(overall_average([_record("A", 2025, "Fall", None)]))

    def test_yearly_averages_sorted_by_year(self) -> None:
        records = [
            _record("A", 2024, "Fall", 5.0),
            _record("B", 2023, "Fall", 3.0),
            _record("C", 2024, "Spring", 4.0),
            _record("D", 2025, "Fall", None),
        ]
        self.assertEqual(
            [
                {"year": 2023, "average_grade": 3.0},
                {"year": 2024, "average_grade": 4.5},
            ],
            yearly_averages(records),
        )


class DashboardHelpersTestCase(unittest.TestCase):
    def test_ongoing_records_have_no_grade(self) -> None:
        graded = _record("A", 2025, "Spring", 4.0)
        ongoing = _record("B", 2025, "Fall", None)
        self.assertEqual([ongoing], ongoing_records([graded, ongoing]))

    def test_term_records_filters_and_sorts(self) -> None:
        records = [
            _record("CS202", 2025, "Spring", 4.75, name="Operating Systems"),
            _record("PHYS201", 2025, "Spring", 4.25, name="Electromagnetism"),
            _record("ELEC301", 2025, "Spring", None, name="Circuit Analysis"),
            _record("CS301", 2025, "Fall", None, name="Algorithms"),
        ]
        self.assertEqual(
            ["PHYS201", "CS202"],
            [r.course_code for r in term_records(records, TermKey(2025, "Spring"))],
        )


if __name__ == "__main__":
    unittest.main()
