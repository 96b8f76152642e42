import json
import unittest

from complexmapper.app.session_manager import SessionManager
from complexmapper.config.config import load_config, validate_config
from complexmapper.errors import ComplexMapperError
from complexmapper.results.package import verify_package
from complexmapper.stimuli.registry import DEMO_LIST_V1, EXPECTED_HASHES
from complexmapper.storage.annotations import TrialAnnotation
from complexmapper.storage.backends import MemoryStorage
from complexmapper.util.randomness import simulate_trials

EXPORTED_AT = "2025-02-01T10:00:00.000Z"


def custom_pack():
    data = DEMO_LIST_V1.to_json()
    data.update({"id": "custom", "version": "2.0.0", "words": ["sun", "moon", "star", "cloud"]})
    data.pop("stimulusSchemaVersion", None)
    return data


class SessionManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = validate_config(load_config(None))
        self.storage = MemoryStorage()
        self.now = [0.0]
        self.mgr = SessionManager(self.cfg, self.storage, clock_ms=lambda: self.now[0])

    def run_session(self, pack_id="demo-10", version="1.0.0", policy="fixed", seed=None):
        draft = self.mgr.start_draft(pack_id, version, order_policy=policy, seed=seed)
        for trial in simulate_trials(draft.stimulus_order, 7):
            self.mgr.record_trial(draft, trial)
        return self.mgr.complete_draft(draft, completed_at="2025-01-05T12:00:00.000Z")

    def test_complete_session(self) -> None:
        session = self.run_session()
        self.assertEqual(len(session.trials), 10)
        self.assertEqual(session.stimulus_pack_snapshot.stimulus_list_hash, EXPECTED_HASHES["demo-10@1.0.0"])
        self.assertEqual(len(session.session_fingerprint), 64)
        self.assertEqual(self.mgr.sessions.ids(), [session.id])
        self.assertIsNone(self.mgr.sessions.load_draft())

    def test_seeded_order_reproducible(self) -> None:
        first = self.mgr.start_draft("demo-10", "1.0.0", order_policy="seeded", seed=42)
        self.mgr.discard_draft()
        second = self.mgr.start_draft("demo-10", "1.0.0", order_policy="seeded", seed=42)
        self.assertEqual(first.stimulus_order, second.stimulus_order)
        self.assertEqual(sorted(first.stimulus_order), sorted(DEMO_LIST_V1.words))
        self.assertEqual(second.seed_used, 42)

    def test_unknown_pack(self) -> None:
        with self.assertRaises(ComplexMapperError):
            self.mgr.start_draft("nope", "1.0.0")

    def test_draft_lock_blocks_second_owner(self) -> None:
        draft = self.mgr.start_draft("demo-10", "1.0.0")
        other = SessionManager(self.cfg, self.storage, clock_ms=lambda: self.now[0])
        with self.assertRaises(ComplexMapperError):
            other.start_draft("demo-10", "1.0.0")
        self.now[0] = 10 * 60 * 1000.0
        resumed = other.resume_draft()
        self.assertEqual(resumed.id, draft.id)
        with self.assertRaises(ComplexMapperError):
            self.mgr.record_trial(draft, simulate_trials(["tree"], 1)[0])

    def test_package_export_and_reimport(self) -> None:
        session = self.run_session()
        art = self.mgr.export_package(session.id, "full", exported_at=EXPORTED_AT)
        self.assertTrue(art.filename.startswith("cm_pkg_v1_full_"))
        self.assertTrue(verify_package(json.loads(art.text)).valid)

        preview = self.mgr.preview_import(art.text)
        imported = self.mgr.import_session(preview)
        self.assertTrue(imported.id.startswith(session.id + "__import_"))
        self.assertEqual(imported.imported_from.original_session_id, session.id)
        self.assertEqual(len(self.mgr.sessions.ids()), 2)

    def test_redacted_package_csvs_match(self) -> None:
        session = self.run_session()
        pkg = self.mgr.export_package(session.id, "redacted", exported_at=EXPORTED_AT).payload
        self.assertEqual(pkg["csv"], pkg["csvRedacted"])
        self.assertNotIn("words", pkg["bundle"]["stimulusPackSnapshot"])

    def test_anonymized_package_uses_anon_id_in_csv(self) -> None:
        session = self.run_session()
        pkg = self.mgr.export_package(session.id, "full", anonymize=True, exported_at=EXPORTED_AT).payload
        anon = pkg["bundle"]["sessionResult"]["id"]
        self.assertTrue(anon.startswith("anon_"))
        self.assertIn(anon, pkg["csv"])
        self.assertNotIn(session.id, pkg["csv"])

    def test_bundle_includes_annotations(self) -> None:
        session = self.run_session()
        self.mgr.annotations.set_annotation(session.id, 2, TrialAnnotation(("DR",)))
        bundle = self.mgr.export_bundle(session.id, "minimal", exported_at=EXPORTED_AT).payload
        self.assertEqual(bundle["annotationsSummary"], {"DR": 1})
        self.assertIn("ciCounts", bundle)

    def test_export_missing_session(self) -> None:
        with self.assertRaises(ComplexMapperError):
            self.mgr.export_bundle("missing")

    def test_invalid_json_import(self) -> None:
        with self.assertRaises(ComplexMapperError):
            self.mgr.preview_import("{broken")

    def test_pack_import_and_delete_keeps_session_snapshot(self) -> None:
        pack, issues = self.mgr.import_pack(custom_pack())
        self.assertEqual(issues, [])
        self.assertIsNotNone(pack.imported_at)
        _, again = self.mgr.import_pack(custom_pack())
        self.assertEqual([i.code for i in again], ["PACK_EXISTS"])

        session = self.run_session("custom", "2.0.0")
        self.assertTrue(self.mgr.delete_pack("custom", "2.0.0"))
        self.assertIsNone(self.mgr.resolve_pack("custom", "2.0.0"))

        stored = self.mgr.sessions.load(session.id)
        self.assertEqual(stored.stimulus_pack_snapshot.words, ("sun", "moon", "star", "cloud"))
        bundle = self.mgr.export_bundle(session.id, "full", exported_at=EXPORTED_AT).payload
        self.assertEqual(bundle["stimulusPackSnapshot"]["words"], ["sun", "moon", "star", "cloud"])

    def test_builtin_pack_cannot_be_reimported(self) -> None:
        _, issues = self.mgr.import_pack(DEMO_LIST_V1.to_json())
        self.assertEqual([i.code for i in issues], ["PACK_EXISTS"])

    def test_extract_pack_from_package(self) -> None:
        self.mgr.import_pack(custom_pack())
        session = self.run_session("custom", "2.0.0")
        text = self.mgr.export_package(session.id, "full", exported_at=EXPORTED_AT).text
        self.mgr.delete_pack("custom", "2.0.0")
        pack, issues = self.mgr.extract_pack(self.mgr.preview_import(text))
        self.assertEqual(issues, [])
        self.assertEqual(pack.words, ("sun", "moon", "star", "cloud"))

    def test_csv_export(self) -> None:
        session = self.run_session()
        art = self.mgr.export_csv(session.id, redacted=True)
        self.assertTrue(art.filename.endswith("_redacted.csv"))
        self.assertEqual(len(art.text.strip().split("\n")), 11)


if __name__ == "__main__":
    unittest.main()
