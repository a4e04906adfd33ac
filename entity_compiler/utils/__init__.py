"""Shared file helpers."""

from .atomic_write import dump_json, write_bytes_atomic, write_json_atomic, write_text_atomic

__all__ = [
    "dump_json",
    "write_bytes_atomic",
    "write_json_atomic",
    "write_text_atomic",
]
