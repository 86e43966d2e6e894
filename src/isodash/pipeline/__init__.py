"""Pipeline modules.

- ingest: Records producer result files into the store
"""

from isodash.pipeline.ingest import SessionIngestor, load_analysis_payload, decode_plot_payload

__all__ = [
    "SessionIngestor",
    "load_analysis_payload",
    "decode_plot_payload",
]
