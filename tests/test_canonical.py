import json
import unittest

from complexmapper.codec import canonical_value, hash_without_field, sha256_hex, stable_stringify, words_sha256
from complexmapper.errors import CanonicalizationError


class Sha256Tests(unittest.TestCase):
    def test_known_vectors(self) -> None:
        self.assertEqual(
            sha256_hex(""), "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )
        self.assertEqual(
            sha256_hex("abc"), "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_rejects_bytes(self) -> None:
        with self.assertRaises(TypeError):
            sha256_hex(b"abc")  # type: ignore[arg-type]

    def test_words_hash_is_newline_join(self) -> None:
        self.assertEqual(words_sha256(["a", "b"]), sha256_hex("a\nb"))
        self.assertNotEqual(words_sha256(["a", "b"]), words_sha256(["b", "a"]))
        self.assertNotEqual(words_sha256(["Tree"]), words_sha256(["tree"]))

    def test_words_hash_survives_json_round_trip(self) -> None:
        words = ["Baum", "Stra\u00dfe", "caf\u00e9", "\u65e5\u672c", "na\u00efve word"]
        for ensure_ascii in (True, False):
            with self.subTest(ensure_ascii=ensure_ascii):
                reloaded = json.loads(json.dumps(words, ensure_ascii=ensure_ascii))
                self.assertEqual(words_sha256(reloaded), words_sha256(words))


class StableStringifyTests(unittest.TestCase):
    def test_compact_and_utf8(self) -> None:
        self.assertEqual(stable_stringify({"a": [1, 2], "b": "é"}), '{"a":[1,2],"b":"é"}')

    def test_top_level_order_then_sorted(self) -> None:
        text = stable_stringify({"z": 1, "b": 2, "a": 3, "y": 4}, key_order=["y", "b"])
        self.assertEqual(text, '{"y":4,"b":2,"a":3,"z":1}')

    def test_independent_of_construction_order(self) -> None:
        one = {"b": 1, "a": {"x": 1}}
        two = {"a": {"x": 1}, "b": 1}
        self.assertEqual(stable_stringify(one, ["a"]), stable_stringify(two, ["a"]))

    def test_nested_keep_insertion_order(self) -> None:
        self.assertEqual(stable_stringify({"o": {"b": 1, "a": 2}}, []), '{"o":{"b":1,"a":2}}')

    def test_integral_floats_are_ints(self) -> None:
        self.assertEqual(stable_stringify({"rt": 400.0}), stable_stringify({"rt": 400}))
        self.assertEqual(stable_stringify([1.5]), "[1.5]")

    def test_non_finite_rejected(self) -> None:
        for bad in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(CanonicalizationError):
                stable_stringify({"x": bad})

    def test_unsupported_type_rejected(self) -> None:
        with self.assertRaises(CanonicalizationError):
            canonical_value({"x": object()})
        with self.assertRaises(CanonicalizationError):
            canonical_value({1: "a"})

    def test_canonicalization_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            stable_stringify(float("nan"))

    def test_hash_without_field(self) -> None:
        env = {"a": 1, "h": "ignored"}
        self.assertEqual(hash_without_field(env, "h", ["a"]), sha256_hex('{"a":1}'))
        env["h"] = "changed"
        self.assertEqual(hash_without_field(env, "h", ["a"]), sha256_hex('{"a":1}'))


if __name__ == "__main__":
    unittest.main()
