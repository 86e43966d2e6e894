"""Read-only dashboard queries.

Each method assembles a view from the store's current records at call time.
Nothing here writes to the store or caches results, so a view can never
disagree with the records it is built from.
"""

import json
import logging
from pathlib import Path
from typing import Optional, TYPE_CHECKING

import pandas as pd

from isodash.engine.aggregator import (
    FrequencyReport,
    daily_rollup,
    dashboard_overview,
    isotope_frequency,
    mass_ranking,
)
from isodash.schemas.records import PLOT_TYPES
from isodash.setup_directories import get_export_path, setup_output_directories

if TYPE_CHECKING:
    from isodash.schemas import InternalConfig
    from isodash.store import AnalysisStore

__all__ = ['AnalysisQueries', 'EXPORTABLE_VIEWS']

logger = logging.getLogger(__name__)

EXPORTABLE_VIEWS = ("latest", "detections", "plots", "frequency", "ranking", "daily")

_PLOT_TYPE_ORDER = " ".join(
    f"WHEN '{name}' THEN {i}" for i, name in enumerate(PLOT_TYPES, start=1)
)


class AnalysisQueries:
    """Dashboard-shaped views over an AnalysisStore.

    Views
    -----
    - ``latest_sessions``: sessions + summary + plot counts, newest first
    - ``detection_results``: detections outer-joined with their mass estimate
    - ``plot_catalog``: plot metadata in fixed type order, payload size only
    - ``isotope_frequency`` / ``mass_ranking`` / ``daily_rollup``:
      cross-session statistics
    - ``overview``: headline numbers and most recent sessions
    - ``session_detail``: everything about one session

    Examples
    --------
    >>> queries = AnalysisQueries(store, config)
    >>> queries.latest_sessions(limit=10)[["session_id", "dominant_isotope", "plot_count"]]
    >>> queries.mass_ranking("Cs-137")
    """

    def __init__(self, store: "AnalysisStore", config: "InternalConfig"):
        self.store = store
        self.config = config
        self.completed_status = config.aggregation.completed_status
        self.timezone = config.aggregation.timezone

    # ------------------------------------------------------------------
    # Presentation views
    # ------------------------------------------------------------------

    def latest_sessions(self, limit: Optional[int] = None) -> pd.DataFrame:
        """Sessions joined with their summary and plot counts, newest first.

        Parameters
        ----------
        limit : int, optional
            Maximum rows. Defaults to ``views.latest_limit``.

        Returns
        -------
        DataFrame
            Session core fields, summary fields (``mass_distribution`` decoded
            to a dict), ``plot_count`` and ``roi_plot_count``.
        """
        if limit is None:
            limit = self.config.views.latest_limit
        df = self.store.read_frame("""
            SELECT s.session_id, s.sample_name, s.background_name, s.confidence_threshold,
                   s.timestamp, s.status, s.total_peaks_found, s.background_peaks,
                   sm.total_estimated_mass_g, sm.total_detections, sm.unique_parent_isotopes,
                   sm.dominant_isotope, sm.mass_distribution,
                   COALESCE(p.plot_count, 0) AS plot_count,
                   COALESCE(p.roi_plot_count, 0) AS roi_plot_count
            FROM analysis_sessions s
            LEFT JOIN analysis_summaries sm ON sm.session_id = s.session_id
            LEFT JOIN (
                SELECT session_id,
                       COUNT(*) AS plot_count,
                       SUM(CASE WHEN plot_type = 'region-of-interest' THEN 1 ELSE 0 END) AS roi_plot_count
                FROM analysis_plots
                GROUP BY session_id
            ) p ON p.session_id = s.session_id
            ORDER BY s.timestamp DESC, s.session_id
            LIMIT ?
        """, (int(limit),))
        df["mass_distribution"] = [
            json.loads(v) if isinstance(v, str) else {} for v in df["mass_distribution"]
        ]
        return df

    def detection_results(self, session_id: Optional[str] = None,
                          isotope: Optional[str] = None) -> pd.DataFrame:
        """One row per detection with the matching (session, parent) mass estimate.

        Detections without a mass estimate keep NULL mass columns.
        """
        where, params = [], []
        if session_id is not None:
            where.append("d.session_id = ?")
            params.append(session_id)
        if isotope is not None:
            where.append("d.parent_isotope = ?")
            params.append(isotope)
        clause = f"WHERE {' AND '.join(where)}" if where else ""

        return self.store.read_frame(f"""
            SELECT d.detection_id, d.session_id, s.sample_name, s.timestamp,
                   d.parent_isotope, d.daughter_isotope, d.energy_kev,
                   d.counts, d.count_uncertainty, d.relative_uncertainty,
                   m.estimated_mass_g, m.mass_uncertainty_g, m.relative_mass_uncertainty
            FROM isotope_detections d
            JOIN analysis_sessions s ON s.session_id = d.session_id
            LEFT OUTER JOIN mass_estimates m
                ON m.session_id = d.session_id AND m.parent_isotope = d.parent_isotope
            {clause}
            ORDER BY s.timestamp DESC, d.session_id, d.energy_kev, d.parent_isotope, d.daughter_isotope
        """, tuple(params))

    def plot_catalog(self, session_id: Optional[str] = None) -> pd.DataFrame:
        """Plot metadata for browsing, without payloads.

        Ordered by plot type (overview, mass-distribution, uncertainty,
        region-of-interest), then region-of-interest isotope and energy with
        NULLs last, then newest session first.
        """
        clause, params = "", ()
        if session_id is not None:
            clause, params = "WHERE p.session_id = ?", (session_id,)

        return self.store.read_frame(f"""
            SELECT plot_id, session_id, sample_name, timestamp, plot_type, title,
                   roi_isotope, roi_energy, payload_bytes, created_at
            FROM (
                SELECT p.plot_id, p.session_id, s.sample_name, s.timestamp,
                       p.plot_type, p.title, p.created_at,
                       CASE p.plot_type {_PLOT_TYPE_ORDER} ELSE {len(PLOT_TYPES) + 1} END AS type_order,
                       CASE WHEN p.plot_type = 'region-of-interest'
                            THEN json_extract(p.metadata, '$.isotope') END AS roi_isotope,
                       CASE WHEN p.plot_type = 'region-of-interest'
                            THEN CAST(json_extract(p.metadata, '$.energy') AS REAL) END AS roi_energy,
                       length(p.payload) AS payload_bytes
                FROM analysis_plots p
                JOIN analysis_sessions s ON s.session_id = p.session_id
                {clause}
            )
            ORDER BY type_order,
                     roi_isotope IS NULL, roi_isotope,
                     roi_energy IS NULL, roi_energy,
                     timestamp DESC, plot_id
        """, params)

    # ------------------------------------------------------------------
    # Cross-session statistics
    # ------------------------------------------------------------------

    def _sessions(self) -> pd.DataFrame:
        return self.store.list_sessions()

    def isotope_frequency(self) -> FrequencyReport:
        """Per-isotope session/sample counts over completed sessions."""
        return isotope_frequency(
            self._sessions(), self.store.isotope_memberships(), self.completed_status
        )

    def mass_ranking(self, isotope: str) -> pd.DataFrame:
        """All sessions' estimates for ``isotope``, competition-ranked by mass."""
        estimates = self.store.read_frame("""
            SELECT m.session_id, s.sample_name, s.timestamp, m.parent_isotope,
                   m.estimated_mass_g, m.mass_uncertainty_g, m.relative_mass_uncertainty
            FROM mass_estimates m
            JOIN analysis_sessions s ON s.session_id = m.session_id
            WHERE m.parent_isotope = ?
        """, (isotope,))
        return mass_ranking(estimates, isotope)

    def daily_rollup(self) -> pd.DataFrame:
        """Completed sessions grouped by calendar day in the configured zone."""
        return daily_rollup(
            self._sessions(), self.store.isotope_memberships(),
            timezone=self.timezone, completed_status=self.completed_status,
        )

    def overview(self) -> dict:
        """Headline dashboard numbers."""
        return dashboard_overview(
            self._sessions(), self.store.isotope_memberships(),
            completed_status=self.completed_status,
            recent_limit=self.config.views.recent_limit,
        )

    def session_detail(self, session_id: str) -> dict:
        """Everything about one session.

        Raises
        ------
        NotFoundError
            Unknown session.
        """
        session = self.store.get_session(session_id)
        return {
            "session": session,
            "summary": self.store.get_summary(session_id),
            "detections": self.store.get_detections(session_id),
            "mass_estimates": self.store.get_mass_estimates(session_id),
            "plots": self.plot_catalog(session_id),
        }

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def view(self, name: str, isotope: Optional[str] = None) -> pd.DataFrame:
        """Return an exportable view by name."""
        if name not in EXPORTABLE_VIEWS:
            raise ValueError(f"Invalid view: {name}. Must be one of {list(EXPORTABLE_VIEWS)}")
        if name == "latest":
            return self.latest_sessions()
        if name == "detections":
            return self.detection_results()
        if name == "plots":
            return self.plot_catalog()
        if name == "frequency":
            return self.isotope_frequency().table
        if name == "daily":
            return self.daily_rollup()
        if not isotope:
            raise ValueError("The ranking view needs an isotope")
        return self.mass_ranking(isotope)

    def export(self, name: str, filepath=None, isotope: Optional[str] = None) -> Optional[Path]:
        """Write a view to Parquet or CSV (``export.format``).

        Parameters
        ----------
        name : str
            One of EXPORTABLE_VIEWS.
        filepath : str or Path, optional
            Output file. Defaults to ``{base_dir}/exports/{name}.{ext}``.
        isotope : str, optional
            Required for the ranking view.

        Returns
        -------
        Path or None
            The written file, or None when the view is empty.
        """
        df = self.view(name, isotope=isotope)
        fmt = self.config.export.format

        if filepath is None:
            output_dirs = setup_output_directories(self.config.base_dir)
            filepath = get_export_path(
                output_dirs, name, fmt, suffix=isotope if name == "ranking" else None
            )
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        if df.empty:
            logger.warning("No rows in view '%s', nothing exported", name)
            return None

        df = df.copy()
        for col in df.columns:
            if df[col].map(lambda v: isinstance(v, dict)).any():
                df[col] = df[col].map(lambda v: json.dumps(v, sort_keys=True))

        if fmt == "parquet":
            compression = None if self.config.export.compression == "none" else self.config.export.compression
            df.to_parquet(filepath, engine="pyarrow", compression=compression, index=False)
        else:
            compression = None if self.config.export.compression != "gzip" else "gzip"
            df.to_csv(filepath, index=False, compression=compression)

        logger.info("Exported %d rows of '%s' to: %s", len(df), name, filepath)
        return filepath
