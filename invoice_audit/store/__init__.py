"""Shared result store."""

from .result_store import ResultStore, StoreSnapshot

__all__ = ["ResultStore", "StoreSnapshot"]
