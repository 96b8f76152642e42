import unittest

from complexmapper.models import REPEATED_RESPONSE, TIMEOUT, TIMING_OUTLIER_SLOW
from complexmapper.stats.ci_codes import aggregate_ci_counts, compute_ci_codes


class CiCodeTests(unittest.TestCase):
    def test_classifier_table(self) -> None:
        cases = [
            ("", [], "tree", ["F"]),
            ("leaf", [TIMEOUT], "tree", ["F"]),
            ("tree", [TIMING_OUTLIER_SLOW], "tree", ["RSW", "PRT"]),
            ("green leaf", [], "tree", ["MSW"]),
            ("Tree", [REPEATED_RESPONSE], "tree", ["RSW", "(P)"]),
            ("big tree", [TIMING_OUTLIER_SLOW, REPEATED_RESPONSE], "tree", ["MSW", "PRT", "(P)"]),
            ("leaf", [], "tree", []),
        ]
        for response, flags, word, expected in cases:
            with self.subTest(response=response, flags=flags):
                self.assertEqual(compute_ci_codes(response, flags, word), expected)

    def test_all_non_failure_conditions_together(self) -> None:
        codes = compute_ci_codes("Ice Cream", [TIMING_OUTLIER_SLOW, REPEATED_RESPONSE], "ice cream")
        self.assertEqual(codes, ["MSW", "RSW", "PRT", "(P)"])
        self.assertNotIn("F", codes)

    def test_failure_excludes_other_codes(self) -> None:
        self.assertEqual(compute_ci_codes("  ", [TIMING_OUTLIER_SLOW, REPEATED_RESPONSE], "x"), ["F"])

    def test_aggregate_omits_zero_counts(self) -> None:
        counts = aggregate_ci_counts([["F"], ["RSW", "PRT"], [], ["F"]])
        self.assertEqual(counts, {"F": 2, "RSW": 1, "PRT": 1})
        self.assertEqual(list(counts), ["F", "RSW", "PRT"])
        self.assertEqual(aggregate_ci_counts([]), {})


if __name__ == "__main__":
    unittest.main()
