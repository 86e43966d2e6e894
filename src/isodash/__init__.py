"""`isodash` - aggregation and derived metrics for gamma-spectroscopy isotope analyses.

Subpackages:
- schemas: Configuration layers and inbound record schemas
- contracts: Error taxonomy and write-time invariants
- engine: Derivation rules, session summarizer, cross-session aggregator
- store: SQLite record store
- views: Read-only dashboard queries
- pipeline: Ingestion of producer result files
- cli: Command-line entry point
"""

__version__ = "0.1.0"
