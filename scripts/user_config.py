"""isodash User Configuration.

This is the user-facing configuration file. Modify settings here to customize
storage and dashboard views. Advanced settings are in
src/isodash/schemas/param.py

Usage:
    isodash --config scripts/user_config.py ingest incoming/
    isodash --config scripts/user_config.py daily
    isodash --config scripts/user_config.py export latest
"""

CONFIG = {
    # ========================================================================
    # STORAGE
    # ========================================================================
    "BASE_DIR": "./isodash_output",   # db/, exports/, logs/ go here
    "DB_PATH": None,                  # Explicit database file (None = BASE_DIR/db/)

    # ========================================================================
    # STATISTICS
    # ========================================================================
    "ISOTOPE_SOURCE": "mass_estimates",  # "mass_estimates" or "detections"
    "TIMEZONE": "UTC",                   # IANA zone for day boundaries

    # ========================================================================
    # VIEWS & EXPORT
    # ========================================================================
    "RECENT_LIMIT": 5,            # Sessions shown in the overview
    "EXPORT_FORMAT": "parquet",   # "parquet" or "csv"

    "LOG_LEVEL": "INFO",

    # Note: store timeouts, journal mode and export compression are
    # configured in src/isodash/schemas/param.py
}
