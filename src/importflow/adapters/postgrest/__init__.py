"""PostgREST-backed record store for the managed backend."""

from __future__ import annotations

from .store import PostgrestRecordStore, match_params

__all__ = ["PostgrestRecordStore", "match_params"]
