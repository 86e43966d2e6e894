"""Record store.

- record_store: SQLite-backed sessions, detections, mass estimates, plots, summaries
"""

from isodash.store.record_store import AnalysisStore

__all__ = ["AnalysisStore"]
