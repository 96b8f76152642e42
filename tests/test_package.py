import copy
import json
import unittest

from complexmapper.constants import HASH_ALGORITHM, PACKAGE_VERSION
from complexmapper.results.bundle import build_session_bundle
from complexmapper.results.csv_export import session_trials_to_csv
from complexmapper.results.package import build_package, package_digest, package_to_text, verify_package

from tests.helpers import make_session

EXPORTED_AT = "2025-02-01T10:00:00.000Z"


def make_package():
    s = make_session()
    args = (s.trials, s.scoring.trial_flags, s.id, "demo-10", "1.0.0", s.seed_used, s.session_fingerprint)
    bundle = build_session_bundle(s, "full", EXPORTED_AT)
    return build_package(bundle, session_trials_to_csv(*args), session_trials_to_csv(*args, redacted=True), EXPORTED_AT)


class PackageTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pkg = make_package()

    def test_envelope(self) -> None:
        self.assertEqual(self.pkg["packageVersion"], PACKAGE_VERSION)
        self.assertEqual(self.pkg["hashAlgorithm"], HASH_ALGORITHM)
        self.assertEqual(len(self.pkg["packageHash"]), 64)
        self.assertEqual(self.pkg["packageHash"], package_digest(self.pkg))

    def test_verify_valid(self) -> None:
        result = verify_package(self.pkg)
        self.assertTrue(result.valid)
        self.assertEqual(result.expected, result.actual)

    def test_verify_after_text_round_trip(self) -> None:
        text = package_to_text(self.pkg)
        self.assertTrue(text.startswith('{"packageVersion":"pkg_v1","packageHash":'))
        self.assertTrue(verify_package(json.loads(text)).valid)

    def test_deterministic(self) -> None:
        self.assertEqual(make_package()["packageHash"], self.pkg["packageHash"])

    def test_tampering_detected(self) -> None:
        def edit_response(p):
            p["bundle"]["sessionResult"]["trials"][0]["association"]["response"] = "forged"

        def edit_csv(p):
            p["csv"] = p["csv"] + "x"

        def edit_redacted(p):
            p["csvRedacted"] = p["csvRedacted"].replace("demo-10", "demo-11", 1)

        def edit_time(p):
            p["exportedAt"] = "2030-01-01T00:00:00.000Z"

        for edit in (edit_response, edit_csv, edit_redacted, edit_time):
            with self.subTest(edit=edit.__name__):
                tampered = copy.deepcopy(self.pkg)
                edit(tampered)
                result = verify_package(tampered)
                self.assertFalse(result.valid)
                self.assertEqual(result.expected, self.pkg["packageHash"])
                self.assertNotEqual(result.actual, result.expected)

    def test_missing_hash_is_invalid(self) -> None:
        pkg = copy.deepcopy(self.pkg)
        del pkg["packageHash"]
        result = verify_package(pkg)
        self.assertFalse(result.valid)
        self.assertEqual(result.expected, "")

    def test_uncanonicalizable_does_not_raise(self) -> None:
        pkg = copy.deepcopy(self.pkg)
        pkg["bundle"]["extra"] = float("nan")
        result = verify_package(pkg)
        self.assertFalse(result.valid)
        self.assertEqual(result.actual, "")


if __name__ == "__main__":
    unittest.main()
