"""Snapshot-owning query façade and its result cache."""

from pipeviz_engine.engine.cache import SnapshotCache
from pipeviz_engine.engine.estate import EstateEngine, snapshot_fingerprint

__all__ = ["EstateEngine", "SnapshotCache", "snapshot_fingerprint"]
