"""Cross-session statistics.

Every function here is a pure function of the record set it is handed.
Nothing is persisted: the query layer reads the live sessions and
isotope memberships from the store and calls these on each request, so the
statistics cannot drift from the records.

Inputs
------
sessions : DataFrame
    One row per session with at least ``session_id``, ``sample_name``,
    ``timestamp`` (ISO-8601 with offset), ``status``, ``total_peaks_found``
    and ``background_peaks``.
memberships : DataFrame
    ``(session_id, isotope)`` pairs: the isotopes of each session, built
    from the configured isotope source.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

__all__ = [
    'NO_DATA',
    'FrequencyReport',
    'isotope_frequency',
    'mass_ranking',
    'daily_rollup',
    'dashboard_overview',
]

logger = logging.getLogger(__name__)

NO_DATA = "no_data"

FREQUENCY_COLUMNS = ["isotope", "session_count", "sample_count", "percentage"]
RANKING_COLUMNS = [
    "rank", "session_id", "sample_name", "timestamp",
    "estimated_mass_g", "mass_uncertainty_g", "relative_mass_uncertainty",
]
ROLLUP_COLUMNS = [
    "day", "analyses", "avg_peaks_found", "avg_background_peaks",
    "distinct_samples", "isotopes",
]


@dataclass(frozen=True, eq=False)
class FrequencyReport:
    """Isotope detection frequency across completed sessions.

    When there are no completed sessions the report has ``status == "no_data"``
    and an empty table; percentages are then undefined rather than an error.
    """
    completed_sessions: int
    table: pd.DataFrame

    @property
    def status(self) -> str:
        return NO_DATA if self.completed_sessions == 0 else "ok"

    @property
    def no_data(self) -> bool:
        return self.completed_sessions == 0

    def percentage(self, isotope: str) -> Optional[float]:
        """Percentage of completed sessions containing ``isotope``; None when no data."""
        if self.no_data:
            return None
        match = self.table.loc[self.table["isotope"] == isotope, "percentage"]
        return float(match.iloc[0]) if len(match) else 0.0

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "completed_sessions": self.completed_sessions,
            "isotopes": self.table.to_dict(orient="records"),
        }


def _completed(sessions: pd.DataFrame, completed_status: str) -> pd.DataFrame:
    if sessions.empty:
        return sessions
    return sessions[sessions["status"] == completed_status]


def _completed_memberships(completed: pd.DataFrame, memberships: pd.DataFrame) -> pd.DataFrame:
    if completed.empty or memberships.empty:
        return pd.DataFrame(columns=["session_id", "isotope", "sample_name"])
    merged = memberships.merge(
        completed[["session_id", "sample_name"]], on="session_id", how="inner"
    )
    return merged.drop_duplicates(["session_id", "isotope"])


def isotope_frequency(sessions: pd.DataFrame, memberships: pd.DataFrame,
                      completed_status: str = "completed") -> FrequencyReport:
    """Count, per isotope, the completed sessions and distinct samples containing it.

    Returns
    -------
    FrequencyReport
        ``table`` columns: isotope, session_count, sample_count, percentage
        (0-100 of all completed sessions). Sorted by session_count
        descending, then isotope name.
    """
    completed = _completed(sessions, completed_status)
    n_completed = int(len(completed))
    if n_completed == 0:
        logger.debug("Isotope frequency: no completed sessions")
        return FrequencyReport(0, pd.DataFrame(columns=FREQUENCY_COLUMNS))

    merged = _completed_memberships(completed, memberships)
    if merged.empty:
        return FrequencyReport(n_completed, pd.DataFrame(columns=FREQUENCY_COLUMNS))

    table = (
        merged.groupby("isotope")
        .agg(session_count=("session_id", "nunique"), sample_count=("sample_name", "nunique"))
        .reset_index()
    )
    table["percentage"] = table["session_count"] / n_completed * 100.0
    table = table.sort_values(
        ["session_count", "isotope"], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)
    return FrequencyReport(n_completed, table[FREQUENCY_COLUMNS])


def mass_ranking(mass_estimates: pd.DataFrame, isotope: str) -> pd.DataFrame:
    """Rank every session's mass estimate for one isotope, heaviest first.

    Ties share a rank and the next distinct value skips accordingly
    (standard competition ranking): masses [5, 5, 3] → ranks [1, 1, 3].

    Parameters
    ----------
    mass_estimates : DataFrame
        Mass estimates joined with session fields (``sample_name``, ``timestamp``).
    isotope : str
        Parent isotope to rank.

    Returns
    -------
    DataFrame
        RANKING_COLUMNS, sorted by rank, then session timestamp (newest
        first) and session_id. Empty if the isotope has no estimates.
    """
    if mass_estimates.empty:
        return pd.DataFrame(columns=RANKING_COLUMNS)

    df = mass_estimates[mass_estimates["parent_isotope"] == isotope].copy()
    if df.empty:
        return pd.DataFrame(columns=RANKING_COLUMNS)

    df["estimated_mass_g"] = df["estimated_mass_g"].astype(float)
    df["rank"] = df["estimated_mass_g"].rank(method="min", ascending=False).astype(int)
    df = df.sort_values(
        ["rank", "timestamp", "session_id"], ascending=[True, False, True], kind="mergesort"
    ).reset_index(drop=True)
    return df[RANKING_COLUMNS]


def daily_rollup(sessions: pd.DataFrame, memberships: pd.DataFrame,
                 timezone: str = "UTC", completed_status: str = "completed") -> pd.DataFrame:
    """Group completed sessions by calendar day in one canonical zone.

    Returns
    -------
    DataFrame
        ROLLUP_COLUMNS, newest day first. ``isotopes`` holds the sorted
        list of distinct isotopes seen that day.
    """
    completed = _completed(sessions, completed_status)
    if completed.empty:
        return pd.DataFrame(columns=ROLLUP_COLUMNS)

    df = completed.copy()
    stamps = pd.to_datetime(df["timestamp"], utc=True, format="ISO8601")
    df["day"] = stamps.dt.tz_convert(timezone).dt.date

    rollup = (
        df.groupby("day")
        .agg(
            analyses=("session_id", "count"),
            avg_peaks_found=("total_peaks_found", "mean"),
            avg_background_peaks=("background_peaks", "mean"),
            distinct_samples=("sample_name", "nunique"),
        )
        .reset_index()
    )

    merged = _completed_memberships(completed, memberships)
    if merged.empty:
        isotopes_by_day = {}
    else:
        merged = merged.merge(df[["session_id", "day"]], on="session_id", how="inner")
        isotopes_by_day = {
            day: sorted(group["isotope"].unique().tolist())
            for day, group in merged.groupby("day")
        }
    rollup["isotopes"] = [isotopes_by_day.get(day, []) for day in rollup["day"]]

    rollup = rollup.sort_values("day", ascending=False).reset_index(drop=True)
    return rollup[ROLLUP_COLUMNS]


def dashboard_overview(sessions: pd.DataFrame, memberships: pd.DataFrame,
                       completed_status: str = "completed", recent_limit: int = 5) -> dict:
    """Headline numbers for the dashboard landing page.

    Returns
    -------
    dict
        - ``total_analyses``: all sessions
        - ``completed_analyses``: sessions with the completed status
        - ``total_isotopes``: sum over completed sessions of their isotope counts
        - ``unique_isotopes``: distinct isotopes over completed sessions
        - ``avg_peaks``: mean total_peaks_found over completed sessions,
          None when there are none
        - ``isotope_frequency``: isotope → number of completed sessions
        - ``recent_sessions``: DataFrame of the newest ``recent_limit`` sessions
    """
    completed = _completed(sessions, completed_status)
    merged = _completed_memberships(completed, memberships)
    counts = merged.groupby("isotope")["session_id"].nunique() if not merged.empty else pd.Series(dtype=int)

    avg_peaks = None
    if len(completed) > 0:
        avg_peaks = float(np.mean(completed["total_peaks_found"].astype(float)))

    if sessions.empty:
        recent = sessions
    else:
        recent = sessions.sort_values("timestamp", ascending=False, kind="mergesort").head(recent_limit)

    return {
        "total_analyses": int(len(sessions)),
        "completed_analyses": int(len(completed)),
        "total_isotopes": int(len(merged)),
        "unique_isotopes": int(len(counts)),
        "avg_peaks": avg_peaks,
        "isotope_frequency": {str(k): int(v) for k, v in counts.sort_index().items()},
        "recent_sessions": recent.reset_index(drop=True),
    }
