from .canonical import canonical_value, stable_stringify, sha256_hex, words_sha256, hash_without_field

__all__ = [
    "canonical_value",
    "stable_stringify",
    "sha256_hex",
    "words_sha256",
    "hash_without_field",
]
