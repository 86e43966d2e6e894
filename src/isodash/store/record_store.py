"""SQLite-based record store for isotope analysis sessions.

Holds analysis sessions and the records they own (detections, mass
estimates, plots, summaries). Every write path runs the derivation pass and
the summary recomputation inside the same transaction as the write itself,
so readers only ever see complete, internally consistent sessions.
"""

import json
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

import pandas as pd

from isodash.contracts import (
    NotFoundError,
    ValidationError,
    assert_summary_consistent,
    assert_unique_keys,
    validate_record,
    validate_records,
)
from isodash.engine.derivation import derive_detection, derive_mass_estimate
from isodash.engine.summarizer import SessionSummary, summarize_session
from isodash.schemas.records import (
    SESSION_STATUSES,
    DetectionInput,
    MassEstimateInput,
    PlotInput,
    SessionInput,
)

if TYPE_CHECKING:
    from isodash.schemas import InternalConfig

__all__ = ['AnalysisStore']

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS analysis_sessions (
    session_id TEXT PRIMARY KEY,
    sample_name TEXT NOT NULL,
    background_name TEXT,
    confidence_threshold REAL NOT NULL
        CHECK (confidence_threshold > 0 AND confidence_threshold <= 1),
    timestamp TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'completed'
        CHECK (status IN ('pending', 'completed', 'failed')),
    total_peaks_found INTEGER NOT NULL DEFAULT 0 CHECK (total_peaks_found >= 0),
    background_peaks INTEGER NOT NULL DEFAULT 0 CHECK (background_peaks >= 0),
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS isotope_detections (
    detection_id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL
        REFERENCES analysis_sessions(session_id) ON DELETE CASCADE,
    parent_isotope TEXT NOT NULL,
    daughter_isotope TEXT NOT NULL,
    energy_kev REAL NOT NULL CHECK (energy_kev > 0),
    counts REAL NOT NULL CHECK (counts >= 0),
    count_uncertainty REAL NOT NULL CHECK (count_uncertainty >= 0),
    relative_uncertainty REAL,
    UNIQUE (session_id, parent_isotope, daughter_isotope, energy_kev)
);

CREATE TABLE IF NOT EXISTS mass_estimates (
    estimate_id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL
        REFERENCES analysis_sessions(session_id) ON DELETE CASCADE,
    parent_isotope TEXT NOT NULL,
    estimated_mass_g REAL NOT NULL CHECK (estimated_mass_g >= 0),
    mass_uncertainty_g REAL NOT NULL CHECK (mass_uncertainty_g >= 0),
    relative_mass_uncertainty REAL,
    UNIQUE (session_id, parent_isotope)
);

CREATE TABLE IF NOT EXISTS analysis_plots (
    plot_id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL
        REFERENCES analysis_sessions(session_id) ON DELETE CASCADE,
    plot_type TEXT NOT NULL
        CHECK (plot_type IN ('overview', 'mass-distribution', 'uncertainty', 'region-of-interest')),
    title TEXT NOT NULL DEFAULT '',
    payload BLOB NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS analysis_summaries (
    session_id TEXT PRIMARY KEY
        REFERENCES analysis_sessions(session_id) ON DELETE CASCADE,
    total_estimated_mass_g REAL NOT NULL CHECK (total_estimated_mass_g >= 0),
    total_detections INTEGER NOT NULL,
    unique_parent_isotopes INTEGER NOT NULL,
    dominant_isotope TEXT,
    mass_distribution TEXT NOT NULL DEFAULT '{}',
    isotope_source TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_timestamp ON analysis_sessions(timestamp);
CREATE INDEX IF NOT EXISTS idx_sessions_status ON analysis_sessions(status);
CREATE INDEX IF NOT EXISTS idx_detections_session ON isotope_detections(session_id);
CREATE INDEX IF NOT EXISTS idx_detections_parent ON isotope_detections(parent_isotope);
CREATE INDEX IF NOT EXISTS idx_masses_parent ON mass_estimates(parent_isotope);
CREATE INDEX IF NOT EXISTS idx_plots_session ON analysis_plots(session_id);
"""

DETECTION_COLUMNS = [
    "detection_id", "session_id", "parent_isotope", "daughter_isotope",
    "energy_kev", "counts", "count_uncertainty", "relative_uncertainty",
]
MASS_COLUMNS = [
    "estimate_id", "session_id", "parent_isotope", "estimated_mass_g",
    "mass_uncertainty_g", "relative_mass_uncertainty",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _iso_utc(ts: datetime) -> str:
    """Canonical stored form: UTC, fixed microsecond precision (sorts as text)."""
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


class AnalysisStore:
    """Durable store of analysis sessions and their owned records.

    **Tables:**

    - ``analysis_sessions``: root entity, one row per analysis run
    - ``isotope_detections``: identified peaks, unique per
      (session, parent, daughter, energy)
    - ``mass_estimates``: one per (session, parent isotope)
    - ``analysis_plots``: opaque plot payloads with typed metadata
    - ``analysis_summaries``: exactly one per session, rewritten together
      with any change to the session's detections or estimates

    **Write atomicity:**

    Each public write method is one ``BEGIN IMMEDIATE`` transaction guarded
    by the writer lock. Field invariants are checked before the transaction;
    natural keys are checked inside it. Any failure rolls back the whole
    call. Writes to the same session therefore serialize, and the summary
    always reflects the committed detection/estimate set.

    **Ownership:**

    Child tables reference ``analysis_sessions`` with ``ON DELETE CASCADE``
    and foreign keys are enabled on every connection, so ``delete_session``
    removes everything the session owns.

    **Reads:**

    Each reading thread gets its own connection. In WAL mode readers never
    block the writer; a writer reading after its own commit sees its writes.

    **Typical Usage:**

        with AnalysisStore(db_path) as store:
            sid = store.record_session(
                {"sample_name": "soil_07.spe", "confidence_threshold": 0.95,
                 "timestamp": "2025-03-05T12:00:00Z"},
                detections=[...],
                mass_estimates=[...],
            )
            summary = store.get_summary(sid)
    """

    def __init__(self, db_path, isotope_source: str = "mass_estimates",
                 timeout_sec: float = 30.0, journal_mode: str = "wal"):
        """Open (and create if needed) the store.

        Parameters
        ----------
        db_path : Path or str
            SQLite database file. Parent directories are created.
        isotope_source : {"mass_estimates", "detections"}
            Which records define a session's isotopes (summaries and
            cross-session statistics).
        timeout_sec : float
            SQLite busy timeout.
        journal_mode : {"wal", "delete"}
            SQLite journal mode.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.isotope_source = isotope_source
        self.timeout_sec = timeout_sec
        self.journal_mode = journal_mode

        self._conn = None
        self._lock = threading.Lock()
        self._local = threading.local()
        self._read_conns: List[sqlite3.Connection] = []
        self._read_conns_lock = threading.Lock()

        self._init_database()
        self._refresh_stale_summaries()
        logger.info("Record store initialized: %s", self.db_path)

    @classmethod
    def from_config(cls, config: "InternalConfig") -> "AnalysisStore":
        """Build a store from resolved runtime configuration."""
        return cls(
            config.database_path,
            isotope_source=config.summary.isotope_source,
            timeout_sec=config.store.timeout_sec,
            journal_mode=config.store.journal_mode,
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout_sec,
            check_same_thread=False,
            isolation_level=None,  # explicit BEGIN/COMMIT
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _get_connection(self) -> sqlite3.Connection:
        """Get the writer connection."""
        if self._conn is None:
            self._conn = self._connect()
        return self._conn

    def _read_connection(self) -> sqlite3.Connection:
        """Get this thread's reader connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._connect()
            self._local.conn = conn
            with self._read_conns_lock:
                self._read_conns.append(conn)
        return conn

    def _init_database(self):
        """Create schema if it doesn't exist."""
        conn = self._get_connection()
        with self._lock:
            conn.execute(f"PRAGMA journal_mode = {self.journal_mode.upper()}")
            conn.executescript(SCHEMA)

    def _refresh_stale_summaries(self):
        """Recompute summaries written under a different isotope source.

        Keeps stored summaries and cross-session statistics on the one
        isotope definition this store was opened with.
        """
        with self._transaction("summary refresh") as conn:
            stale = [
                row["session_id"] for row in conn.execute(
                    "SELECT session_id FROM analysis_summaries WHERE isotope_source != ?",
                    (self.isotope_source,),
                ).fetchall()
            ]
            for session_id in stale:
                self._refresh_summary(conn, session_id)
        if stale:
            logger.info("Recomputed %d summaries for isotope source '%s'",
                        len(stale), self.isotope_source)

    @contextmanager
    def _transaction(self, action: str):
        """Serialize one write call as a single immediate transaction.

        sqlite3.IntegrityError (CHECK, UNIQUE, PRIMARY KEY) is translated to
        ValidationError. Any exception rolls back everything in the call.
        """
        conn = self._get_connection()
        with self._lock:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except sqlite3.IntegrityError as exc:
                conn.execute("ROLLBACK")
                logger.warning("Rejected %s: %s", action, exc)
                raise ValidationError(f"Rejected {action}: {exc}") from exc
            except ValidationError as exc:
                conn.execute("ROLLBACK")
                logger.warning("Rejected %s: %s", action, exc)
                raise
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")

    # ------------------------------------------------------------------
    # Write helpers (caller holds the transaction)
    # ------------------------------------------------------------------

    @staticmethod
    def _require_session(conn, session_id: str) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM analysis_sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return row

    @staticmethod
    def _insert_session(conn, session: SessionInput) -> str:
        session_id = session.analysis_id or uuid.uuid4().hex[:16]
        exists = conn.execute(
            "SELECT 1 FROM analysis_sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        if exists:
            raise ValidationError(f"Session already exists: {session_id}")

        now = _now()
        conn.execute("""
            INSERT INTO analysis_sessions
            (session_id, sample_name, background_name, confidence_threshold, timestamp,
             status, total_peaks_found, background_peaks, metadata, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            session_id,
            session.sample_name,
            session.background_name,
            session.confidence_threshold,
            _iso_utc(session.timestamp),
            session.status,
            session.total_peaks_found,
            session.background_peaks,
            json.dumps(session.metadata, sort_keys=True, default=str),
            now,
            now,
        ))
        return session_id

    @staticmethod
    def _insert_detections(conn, session_id: str, detections: List[DetectionInput]) -> int:
        existing = conn.execute("""
            SELECT parent_isotope, daughter_isotope, energy_kev
            FROM isotope_detections WHERE session_id = ?
        """, (session_id,)).fetchall()
        assert_unique_keys(
            [d.key for d in detections], "detection",
            existing=[tuple(row) for row in existing],
        )

        rows = [derive_detection(d.model_dump()) for d in detections]
        conn.executemany("""
            INSERT INTO isotope_detections
            (session_id, parent_isotope, daughter_isotope, energy_kev,
             counts, count_uncertainty, relative_uncertainty)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, [
            (session_id, r["parent_isotope"], r["daughter_isotope"], r["energy_kev"],
             r["counts"], r["count_uncertainty"], r["relative_uncertainty"])
            for r in rows
        ])
        return len(rows)

    @staticmethod
    def _insert_mass_estimates(conn, session_id: str, estimates: List[MassEstimateInput]) -> int:
        existing = conn.execute(
            "SELECT parent_isotope FROM mass_estimates WHERE session_id = ?", (session_id,)
        ).fetchall()
        assert_unique_keys(
            [(m.parent_isotope,) for m in estimates], "mass estimate",
            existing=[tuple(row) for row in existing],
        )

        rows = [derive_mass_estimate(m.model_dump()) for m in estimates]
        conn.executemany("""
            INSERT INTO mass_estimates
            (session_id, parent_isotope, estimated_mass_g, mass_uncertainty_g,
             relative_mass_uncertainty)
            VALUES (?, ?, ?, ?, ?)
        """, [
            (session_id, r["parent_isotope"], r["estimated_mass_g"],
             r["mass_uncertainty_g"], r["relative_mass_uncertainty"])
            for r in rows
        ])
        return len(rows)

    @staticmethod
    def _insert_plot(conn, session_id: str, plot: PlotInput) -> int:
        cursor = conn.execute("""
            INSERT INTO analysis_plots
            (session_id, plot_type, title, payload, metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            session_id,
            plot.plot_type,
            plot.title,
            sqlite3.Binary(plot.payload),
            json.dumps(plot.metadata, sort_keys=True, default=str),
            _now(),
        ))
        return cursor.lastrowid

    def _refresh_summary(self, conn, session_id: str) -> SessionSummary:
        """Recompute and replace the session's summary from its current records."""
        detections = pd.read_sql(
            "SELECT parent_isotope FROM isotope_detections WHERE session_id = ?",
            conn, params=(session_id,),
        )
        masses = pd.read_sql(
            "SELECT parent_isotope, estimated_mass_g FROM mass_estimates WHERE session_id = ?",
            conn, params=(session_id,),
        )
        summary = summarize_session(
            detections, masses, isotope_source=self.isotope_source, session_id=session_id
        )
        assert_summary_consistent(summary, masses["estimated_mass_g"].tolist(), len(detections))

        row = summary.to_row()
        conn.execute("""
            INSERT OR REPLACE INTO analysis_summaries
            (session_id, total_estimated_mass_g, total_detections, unique_parent_isotopes,
             dominant_isotope, mass_distribution, isotope_source, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            session_id,
            row["total_estimated_mass_g"],
            row["total_detections"],
            row["unique_parent_isotopes"],
            row["dominant_isotope"],
            row["mass_distribution"],
            self.isotope_source,
            _now(),
        ))
        return summary

    @staticmethod
    def _touch_session(conn, session_id: str):
        conn.execute(
            "UPDATE analysis_sessions SET updated_at = ? WHERE session_id = ?",
            (_now(), session_id),
        )

    # ------------------------------------------------------------------
    # Inbound interface
    # ------------------------------------------------------------------

    def create_session(self, session) -> str:
        """Create a session with no child records.

        Parameters
        ----------
        session : dict or SessionInput
            sample_name, background_name, confidence_threshold, timestamp,
            status, total_peaks_found, background_peaks, metadata and an
            optional analysis_id (generated if absent).

        Returns
        -------
        str
            The session identifier.

        Raises
        ------
        ValidationError
            On any field invariant violation or a duplicate analysis_id.
        """
        session = validate_record(SessionInput, session, "session")
        with self._transaction("session") as conn:
            session_id = self._insert_session(conn, session)
            self._refresh_summary(conn, session_id)
        logger.info("Created session %s (%s)", session_id, session.sample_name)
        return session_id

    def append_detections(self, session_id: str, detections: Iterable) -> int:
        """Append a batch of detections to a session.

        The batch is rejected as a whole if any record violates a field
        invariant or repeats a (parent, daughter, energy) key, within the
        batch or against stored detections.

        Returns
        -------
        int
            Number of detections written.

        Raises
        ------
        ValidationError
            Invalid or duplicate records; nothing is written.
        NotFoundError
            Unknown session.
        """
        detections = validate_records(DetectionInput, detections, "detection")
        with self._transaction("detection batch") as conn:
            self._require_session(conn, session_id)
            n = self._insert_detections(conn, session_id, detections)
            self._refresh_summary(conn, session_id)
            self._touch_session(conn, session_id)
        logger.debug("Appended %d detections to %s", n, session_id)
        return n

    def append_mass_estimates(self, session_id: str, estimates: Iterable) -> int:
        """Append a batch of mass estimates; rejected whole on a repeated parent isotope.

        Raises
        ------
        ValidationError
            Invalid records or a parent isotope already estimated for the
            session; nothing is written.
        NotFoundError
            Unknown session.
        """
        estimates = validate_records(MassEstimateInput, estimates, "mass estimate")
        with self._transaction("mass estimate batch") as conn:
            self._require_session(conn, session_id)
            n = self._insert_mass_estimates(conn, session_id, estimates)
            self._refresh_summary(conn, session_id)
            self._touch_session(conn, session_id)
        logger.debug("Appended %d mass estimates to %s", n, session_id)
        return n

    def append_plot(self, session_id: str, plot) -> int:
        """Attach one plot artifact to a session.

        Region-of-interest plots need ``isotope`` and ``energy`` in metadata.

        Returns
        -------
        int
            The plot identifier.
        """
        plot = validate_record(PlotInput, plot, "plot")
        with self._transaction("plot") as conn:
            self._require_session(conn, session_id)
            plot_id = self._insert_plot(conn, session_id, plot)
        logger.debug("Stored %s plot %d for %s (%d bytes)",
                     plot.plot_type, plot_id, session_id, len(plot.payload))
        return plot_id

    def record_session(self, session, detections: Iterable = (),
                       mass_estimates: Iterable = (), plots: Iterable = ()) -> str:
        """Write a whole analysis (session + children + summary) atomically.

        Either every record and the resulting summary become visible
        together, or nothing does.

        Returns
        -------
        str
            The session identifier.
        """
        session = validate_record(SessionInput, session, "session")
        detections = validate_records(DetectionInput, detections, "detection")
        mass_estimates = validate_records(MassEstimateInput, mass_estimates, "mass estimate")
        plots = validate_records(PlotInput, plots, "plot")

        with self._transaction("session") as conn:
            session_id = self._insert_session(conn, session)
            self._insert_detections(conn, session_id, detections)
            self._insert_mass_estimates(conn, session_id, mass_estimates)
            for plot in plots:
                self._insert_plot(conn, session_id, plot)
            summary = self._refresh_summary(conn, session_id)

        logger.info(
            "Recorded session %s (%s): %d detections, %d mass estimates, %d plots, dominant=%s",
            session_id, session.sample_name, len(detections), len(mass_estimates),
            len(plots), summary.dominant_isotope,
        )
        return session_id

    def replace_session_results(self, session_id: str, detections: Iterable,
                                mass_estimates: Iterable) -> SessionSummary:
        """Atomically replace a session's detections and mass estimates (re-analysis).

        Plots are kept. The summary is recomputed in the same transaction.
        """
        detections = validate_records(DetectionInput, detections, "detection")
        mass_estimates = validate_records(MassEstimateInput, mass_estimates, "mass estimate")

        with self._transaction("re-analysis") as conn:
            self._require_session(conn, session_id)
            conn.execute("DELETE FROM isotope_detections WHERE session_id = ?", (session_id,))
            conn.execute("DELETE FROM mass_estimates WHERE session_id = ?", (session_id,))
            self._insert_detections(conn, session_id, detections)
            self._insert_mass_estimates(conn, session_id, mass_estimates)
            summary = self._refresh_summary(conn, session_id)
            self._touch_session(conn, session_id)

        logger.info("Replaced results for session %s: %d detections, %d mass estimates",
                    session_id, len(detections), len(mass_estimates))
        return summary

    def update_detection(self, detection_id: int, counts: Optional[float] = None,
                         count_uncertainty: Optional[float] = None) -> dict:
        """Correct a detection's counts and/or count uncertainty.

        The derivation rule and the session summary are re-run in the same
        transaction.

        Returns
        -------
        dict
            The updated detection row.
        """
        with self._transaction("detection update") as conn:
            row = conn.execute(
                "SELECT * FROM isotope_detections WHERE detection_id = ?", (detection_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Detection not found: {detection_id}")

            current = dict(row)
            changes = {}
            if counts is not None:
                changes["counts"] = counts
            if count_uncertainty is not None:
                changes["count_uncertainty"] = count_uncertainty
            checked = validate_record(DetectionInput, {**current, **changes}, "detection")
            updated = derive_detection({**current, **checked.model_dump()})

            conn.execute("""
                UPDATE isotope_detections
                SET counts = ?, count_uncertainty = ?, relative_uncertainty = ?
                WHERE detection_id = ?
            """, (updated["counts"], updated["count_uncertainty"],
                  updated["relative_uncertainty"], detection_id))
            self._refresh_summary(conn, current["session_id"])
            self._touch_session(conn, current["session_id"])

        logger.debug("Updated detection %d", detection_id)
        return updated

    def update_mass_estimate(self, session_id: str, parent_isotope: str,
                             estimated_mass_g: Optional[float] = None,
                             mass_uncertainty_g: Optional[float] = None) -> dict:
        """Correct one mass estimate; re-derives and re-summarizes atomically.

        Returns
        -------
        dict
            The updated mass-estimate row.
        """
        with self._transaction("mass estimate update") as conn:
            row = conn.execute("""
                SELECT * FROM mass_estimates WHERE session_id = ? AND parent_isotope = ?
            """, (session_id, parent_isotope)).fetchone()
            if row is None:
                raise NotFoundError(f"Mass estimate not found: {session_id}/{parent_isotope}")

            current = dict(row)
            changes = {}
            if estimated_mass_g is not None:
                changes["estimated_mass_g"] = estimated_mass_g
            if mass_uncertainty_g is not None:
                changes["mass_uncertainty_g"] = mass_uncertainty_g
            checked = validate_record(MassEstimateInput, {**current, **changes}, "mass estimate")
            updated = derive_mass_estimate({**current, **checked.model_dump()})

            conn.execute("""
                UPDATE mass_estimates
                SET estimated_mass_g = ?, mass_uncertainty_g = ?, relative_mass_uncertainty = ?
                WHERE estimate_id = ?
            """, (updated["estimated_mass_g"], updated["mass_uncertainty_g"],
                  updated["relative_mass_uncertainty"], current["estimate_id"]))
            self._refresh_summary(conn, session_id)
            self._touch_session(conn, session_id)

        logger.debug("Updated mass estimate %s/%s", session_id, parent_isotope)
        return updated

    def set_session_status(self, session_id: str, status: str):
        """Change a session's status (pending, completed, failed)."""
        status = status.lower().strip()
        if status not in SESSION_STATUSES:
            raise ValidationError(f"Invalid status: {status}. Must be one of {list(SESSION_STATUSES)}")
        with self._transaction("status update") as conn:
            self._require_session(conn, session_id)
            conn.execute(
                "UPDATE analysis_sessions SET status = ?, updated_at = ? WHERE session_id = ?",
                (status, _now(), session_id),
            )
        logger.info("Session %s status -> %s", session_id, status)

    def update_session_metadata(self, session_id: str, metadata: Dict, merge: bool = True) -> dict:
        """Update free-form metadata; merged into the existing dict unless merge=False.

        Returns
        -------
        dict
            The stored metadata.
        """
        if not isinstance(metadata, dict):
            raise ValidationError("Session metadata must be a mapping")
        with self._transaction("metadata update") as conn:
            row = self._require_session(conn, session_id)
            stored = json.loads(row["metadata"]) if merge else {}
            stored.update(metadata)
            conn.execute(
                "UPDATE analysis_sessions SET metadata = ?, updated_at = ? WHERE session_id = ?",
                (json.dumps(stored, sort_keys=True, default=str), _now(), session_id),
            )
        return stored

    def delete_session(self, session_id: str):
        """Delete a session and everything it owns.

        Raises
        ------
        NotFoundError
            Unknown session.
        """
        with self._transaction("session delete") as conn:
            self._require_session(conn, session_id)
            conn.execute("DELETE FROM analysis_sessions WHERE session_id = ?", (session_id,))
        logger.info("Deleted session %s", session_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_frame(self, query: str, params=()) -> pd.DataFrame:
        """Run a read-only query on this thread's reader connection."""
        return pd.read_sql(query, self._read_connection(), params=params)

    def get_session(self, session_id: str) -> dict:
        """Return one session as a dict (metadata decoded).

        Raises
        ------
        NotFoundError
            Unknown session.
        """
        row = self._read_connection().execute(
            "SELECT * FROM analysis_sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Session not found: {session_id}")
        session = dict(row)
        session["metadata"] = json.loads(session["metadata"])
        return session

    def get_summary(self, session_id: str) -> SessionSummary:
        """Return the stored summary of one session.

        Raises
        ------
        NotFoundError
            Unknown session.
        """
        row = self._read_connection().execute(
            "SELECT * FROM analysis_summaries WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Summary not found: {session_id}")
        return SessionSummary.from_row(row)

    def get_plot_payload(self, plot_id: int) -> bytes:
        """Return one plot's opaque payload.

        Raises
        ------
        NotFoundError
            Unknown plot.
        """
        row = self._read_connection().execute(
            "SELECT payload FROM analysis_plots WHERE plot_id = ?", (plot_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Plot not found: {plot_id}")
        return bytes(row["payload"])

    def get_detections(self, session_id: str) -> pd.DataFrame:
        """Detections of one session in energy order (empty if none)."""
        return self.read_frame(
            f"SELECT {', '.join(DETECTION_COLUMNS)} FROM isotope_detections "
            "WHERE session_id = ? ORDER BY energy_kev, parent_isotope, daughter_isotope",
            (session_id,),
        )

    def get_mass_estimates(self, session_id: str) -> pd.DataFrame:
        """Mass estimates of one session, heaviest first (empty if none)."""
        return self.read_frame(
            f"SELECT {', '.join(MASS_COLUMNS)} FROM mass_estimates "
            "WHERE session_id = ? ORDER BY estimated_mass_g DESC, parent_isotope",
            (session_id,),
        )

    def list_sessions(self) -> pd.DataFrame:
        """All sessions, newest first."""
        return self.read_frame("""
            SELECT session_id, sample_name, background_name, confidence_threshold,
                   timestamp, status, total_peaks_found, background_peaks,
                   created_at, updated_at
            FROM analysis_sessions
            ORDER BY timestamp DESC, session_id
        """)

    def isotope_memberships(self) -> pd.DataFrame:
        """``(session_id, isotope)`` pairs from the configured isotope source."""
        table = "mass_estimates" if self.isotope_source == "mass_estimates" else "isotope_detections"
        return self.read_frame(
            f"SELECT DISTINCT session_id, parent_isotope AS isotope FROM {table}"
        )

    def get_statistics(self) -> dict:
        """Row counts per table."""
        conn = self._read_connection()
        stats = {}
        for table in ("analysis_sessions", "isotope_detections", "mass_estimates",
                      "analysis_plots", "analysis_summaries"):
            stats[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        return stats

    def close(self):
        """Close all connections. Safe to call multiple times."""
        with self._read_conns_lock:
            for conn in self._read_conns:
                conn.close()
            self._read_conns = []
        self._local = threading.local()
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
