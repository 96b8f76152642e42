import csv
import io
import unittest
from datetime import datetime, timezone

from complexmapper.models import REPEATED_RESPONSE
from complexmapper.results.csv_export import CSV_COLUMNS, session_results_to_csv, session_trials_to_csv
from complexmapper.results.filenames import bundle_filename, csv_filename, pack_filename, package_filename, sanitise
from complexmapper.stats.scoring import compute_trial_flags

from tests.helpers import make_session, make_trial

NOW = datetime(2025, 1, 2, 3, 4, tzinfo=timezone.utc)


def parse(text):
    return list(csv.DictReader(io.StringIO(text)))


class CsvExportTests(unittest.TestCase):
    def setUp(self) -> None:
        s = self.session = make_session()
        self.args = (s.trials, s.scoring.trial_flags, s.id, "demo-10", "1.0.0", None, s.session_fingerprint)

    def test_header_and_rows(self) -> None:
        text = session_trials_to_csv(*self.args)
        lines = text.split("\n")
        self.assertEqual(lines[0], ",".join(CSV_COLUMNS))
        self.assertTrue(text.endswith("\n"))
        rows = parse(text)
        self.assertEqual(len(rows), 10)
        first = rows[0]
        self.assertEqual(first["csv_schema_version"], "csv_v1")
        self.assertEqual(first["response"], "tree")
        self.assertEqual(first["t_submit_ms"], "500")
        self.assertEqual(first["t_first_input_ms"], "")
        self.assertEqual(first["seed"], "")
        self.assertEqual(first["warmup"], "false")
        self.assertEqual(first["flags"], REPEATED_RESPONSE)

    def test_multiple_flags_joined(self) -> None:
        trial = make_trial("tree", "tree", 100, edits=9)
        text = session_trials_to_csv([trial], [], "x", "p", "1", 7)
        self.assertEqual(parse(text)[0]["flags"], "")
        flags = compute_trial_flags([trial])
        row = parse(session_trials_to_csv([trial], flags, "x", "p", "1", 7))[0]
        self.assertEqual(row["flags"], "repeated_response; timing_outlier_fast; high_editing")
        self.assertEqual(row["seed"], "7")

    def test_redacted_blanks_only_responses(self) -> None:
        full = parse(session_trials_to_csv(*self.args))
        red = parse(session_trials_to_csv(*self.args, redacted=True))
        self.assertTrue(all(r["response"] == "" for r in red))
        for a, b in zip(full, red):
            a.pop("response")
            b.pop("response")
            self.assertEqual(a, b)

    def test_quoting(self) -> None:
        trial = make_trial("tree", 'leaf, "green"', 500)
        text = session_trials_to_csv([trial], [], "x", "p", "1", None)
        self.assertIn('"leaf, ""green"""', text)
        self.assertEqual(parse(text)[0]["response"], 'leaf, "green"')

    def test_many_sessions(self) -> None:
        rows = parse(session_results_to_csv([self.session, make_session("session-2")]))
        self.assertEqual(len(rows), 20)
        self.assertEqual({r["session_id"] for r in rows}, {"session-1", "session-2"})


class FilenameTests(unittest.TestCase):
    def test_sanitise(self) -> None:
        self.assertEqual(sanitise("my pack!"), "my-pack")
        self.assertEqual(sanitise("a//b"), "a-b")

    def test_names(self) -> None:
        self.assertEqual(
            bundle_filename("full", "abcdef0123456789", NOW), "cm_rb_v3_full_abcdef0123_20250102T0304.json"
        )
        self.assertEqual(bundle_filename("minimal", None, NOW), "cm_rb_v3_minimal_20250102T0304.json")
        self.assertEqual(package_filename("redacted", "0" * 64, NOW), "cm_pkg_v1_redacted_0000000000_20250102T0304.json")
        self.assertEqual(csv_filename(True, NOW), "cm_csv_v1_20250102T0304_redacted.csv")
        self.assertEqual(csv_filename(False, NOW), "cm_csv_v1_20250102T0304.csv")
        self.assertEqual(pack_filename("my pack", "1.0.0", NOW), "cm_pack_my-pack_1.0.0_20250102.json")


if __name__ == "__main__":
    unittest.main()
