import unittest
from copy import deepcopy

from complexmapper.codec import words_sha256
from complexmapper.constants import STIMULUS_SCHEMA_VERSION
from complexmapper.models import StimulusPackSnapshot
from complexmapper.stimuli.registry import (
    DEMO_LIST_V1,
    EXPECTED_HASHES,
    get_stimulus_list,
    is_builtin,
    list_available_stimulus_lists,
)
from complexmapper.stimuli.schema import validate_stimulus_list
from complexmapper.stimuli.snapshot import normalize_pack, normalize_snapshot, snapshot_from_list


def valid_pack():
    return {
        "id": "custom",
        "version": "1.0.0",
        "language": "en",
        "source": "Test",
        "provenance": {
            "sourceName": "Tester",
            "sourceYear": "2025",
            "sourceCitation": "n/a",
            "licenseNote": "CC0",
        },
        "words": ["alpha", "beta", "gamma"],
    }


def codes(issues):
    return [i.code for i in issues]


class RegistryTests(unittest.TestCase):
    def test_builtin_hashes_are_frozen(self) -> None:
        for entry in list_available_stimulus_lists():
            key = f"{entry['id']}@{entry['version']}"
            pack = get_stimulus_list(entry["id"], entry["version"])
            self.assertIsNotNone(pack)
            self.assertEqual(words_sha256(pack.words), EXPECTED_HASHES[key], key)

    def test_demo_hash_value(self) -> None:
        self.assertEqual(
            words_sha256(DEMO_LIST_V1.words),
            "703387c3dee2fc429df5b478e20916e77e15cb949ea31a2fb1d6067eb8714201",
        )

    def test_lookup(self) -> None:
        self.assertTrue(is_builtin("demo-10", "1.0.0"))
        self.assertFalse(is_builtin("demo-10", "9.9.9"))
        self.assertIsNone(get_stimulus_list("nope", "1.0.0"))
        kr = get_stimulus_list("kent-rosanoff-1910", "1.0.0")
        self.assertEqual(len(kr.words), 100)


class PackValidationTests(unittest.TestCase):
    def test_valid_pack(self) -> None:
        self.assertEqual(validate_stimulus_list(valid_pack()), [])

    def test_not_an_object(self) -> None:
        self.assertEqual(codes(validate_stimulus_list(["a"])), ["NOT_AN_OBJECT"])

    def test_missing_fields(self) -> None:
        pack = valid_pack()
        del pack["id"]
        pack["language"] = "  "
        found = codes(validate_stimulus_list(pack))
        self.assertIn("MISSING_ID", found)
        self.assertIn("MISSING_LANGUAGE", found)

    def test_missing_provenance(self) -> None:
        pack = valid_pack()
        del pack["provenance"]
        self.assertIn("MISSING_PROVENANCE", codes(validate_stimulus_list(pack)))

    def test_missing_provenance_field(self) -> None:
        pack = valid_pack()
        del pack["provenance"]["licenseNote"]
        self.assertIn("MISSING_PROVENANCE_FIELD", codes(validate_stimulus_list(pack)))

    def test_word_problems(self) -> None:
        pack = valid_pack()
        pack["words"] = []
        self.assertEqual(codes(validate_stimulus_list(pack)), ["EMPTY_WORDS"])
        pack["words"] = ["a", " ", "A"]
        found = codes(validate_stimulus_list(pack))
        self.assertIn("BLANK_WORDS", found)
        self.assertIn("DUPLICATE_WORDS", found)

    def test_hash_mismatch(self) -> None:
        pack = valid_pack()
        pack["stimulusListHash"] = "0" * 64
        self.assertEqual(codes(validate_stimulus_list(pack)), ["HASH_MISMATCH"])
        pack["stimulusListHash"] = words_sha256(pack["words"])
        self.assertEqual(validate_stimulus_list(pack), [])

    def test_hash_not_checked_when_structure_invalid(self) -> None:
        pack = valid_pack()
        pack["stimulusListHash"] = "0" * 64
        del pack["source"]
        self.assertEqual(codes(validate_stimulus_list(pack)), ["MISSING_SOURCE"])

    def test_input_not_mutated(self) -> None:
        pack = valid_pack()
        before = deepcopy(pack)
        validate_stimulus_list(pack)
        self.assertEqual(pack, before)


class SnapshotTests(unittest.TestCase):
    def test_fills_missing_hash_and_schema(self) -> None:
        snap = normalize_snapshot(StimulusPackSnapshot(words=("a", "b")))
        self.assertEqual(snap.stimulus_list_hash, words_sha256(["a", "b"]))
        self.assertEqual(snap.stimulus_schema_version, STIMULUS_SCHEMA_VERSION)

    def test_explicit_words_win(self) -> None:
        snap = normalize_snapshot(StimulusPackSnapshot(), ["x"])
        self.assertEqual(snap.words, ("x",))
        self.assertEqual(snap.stimulus_list_hash, words_sha256(["x"]))

    def test_existing_hash_kept(self) -> None:
        snap = StimulusPackSnapshot(stimulus_list_hash="abc", stimulus_schema_version="sp_v0", words=("a",))
        out = normalize_snapshot(snap)
        self.assertEqual(out.stimulus_list_hash, "abc")
        self.assertEqual(out.stimulus_schema_version, "sp_v0")

    def test_no_words_unchanged(self) -> None:
        snap = StimulusPackSnapshot(stimulus_list_hash=None)
        self.assertIs(normalize_snapshot(snap), snap)
        self.assertIs(normalize_snapshot(snap, []), snap)

    def test_snapshot_from_list(self) -> None:
        snap = snapshot_from_list(DEMO_LIST_V1)
        self.assertEqual(snap.stimulus_list_hash, EXPECTED_HASHES["demo-10@1.0.0"])
        self.assertEqual(snap.provenance.word_count, 10)

    def test_normalize_pack(self) -> None:
        pack = normalize_pack(DEMO_LIST_V1)
        self.assertEqual(pack.stimulus_list_hash, EXPECTED_HASHES["demo-10@1.0.0"])


if __name__ == "__main__":
    unittest.main()
