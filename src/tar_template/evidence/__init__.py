"""Content identity and deterministic serialization helpers."""

__all__: list[str] = [
    "build_metadata",
    "hash_utils",
    "stable_json",
]
