"""Ingestion of analysis result files from the external producer.

The spectroscopy analysis (peak finding, nuclide identification, mass
estimation, plotting) runs upstream and writes one JSON document per
completed analysis. This module maps that document onto the store's
inbound interface and records it as one atomic session write.
"""

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Dict, List, TYPE_CHECKING

from isodash.contracts import ValidationError

if TYPE_CHECKING:
    from isodash.store import AnalysisStore

__all__ = ['SessionIngestor', 'load_analysis_payload', 'decode_plot_payload']

logger = logging.getLogger(__name__)

SESSION_FIELDS = (
    "analysis_id", "sample_name", "background_name", "confidence_threshold",
    "timestamp", "status", "total_peaks_found", "background_peaks", "metadata",
)


def load_analysis_payload(path) -> dict:
    """Read one producer result file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValidationError
        If the file is not UTF-8 text holding a JSON object.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Analysis file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise ValidationError(f"{path.name}: not UTF-8 text ({exc.reason})") from exc
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{path.name}: not valid JSON ({exc.msg})") from exc
    if not isinstance(payload, dict):
        raise ValidationError(f"{path.name}: expected a JSON object, got {type(payload).__name__}")
    return payload


def decode_plot_payload(encoded: str) -> bytes:
    """Decode a base64 plot payload, with or without a ``data:...;base64,`` prefix."""
    if not isinstance(encoded, str):
        raise ValidationError(f"Plot payload must be a base64 string, got {type(encoded).__name__}")
    if encoded.startswith("data:"):
        _, _, encoded = encoded.partition(",")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Plot payload is not valid base64: {exc}") from exc


def split_payload(payload: dict):
    """Split a producer document into session, detections, mass estimates and plots."""
    session = {k: payload[k] for k in SESSION_FIELDS if payload.get(k) is not None}

    plots = []
    for i, plot in enumerate(payload.get("plots") or []):
        if not isinstance(plot, Mapping):
            raise ValidationError(f"plot[{i}]: expected an object, got {type(plot).__name__}")
        plot = dict(plot)
        encoded = plot.pop("payload_base64", None)
        if encoded is not None:
            try:
                plot["payload"] = decode_plot_payload(encoded)
            except ValidationError as exc:
                raise ValidationError(f"plot[{i}]: {exc}") from exc
        elif isinstance(plot.get("payload"), str):
            raise ValidationError(f"plot[{i}]: string payloads must be sent as payload_base64")
        plots.append(plot)

    return (
        session,
        list(payload.get("detections") or []),
        list(payload.get("mass_estimates") or []),
        plots,
    )


class SessionIngestor:
    """Records producer result files into an AnalysisStore.

    Each file is one session and one transaction. A file that fails
    validation is logged and counted; it never affects other files.

    Example usage::

        ingestor = SessionIngestor(store)
        result = ingestor.ingest_directory("incoming/")
        print(f"{result['ingested']} ingested, {result['failed']} failed")
    """

    def __init__(self, store: "AnalysisStore"):
        self.store = store

    def ingest_payload(self, payload: dict) -> str:
        """Record one producer document; returns the session identifier."""
        session, detections, masses, plots = split_payload(payload)
        return self.store.record_session(
            session, detections=detections, mass_estimates=masses, plots=plots
        )

    def ingest_file(self, path) -> str:
        """Record one producer result file; returns the session identifier."""
        path = Path(path)
        logger.info("Ingesting: %s", path.name)
        return self.ingest_payload(load_analysis_payload(path))

    def ingest_directory(self, directory, pattern: str = "*.json") -> Dict:
        """Record every matching file in ``directory``, in name order.

        Returns
        -------
        dict
            - ``ingested``: number of sessions recorded
            - ``failed``: number of files rejected
            - ``session_ids``: identifiers of recorded sessions
            - ``errors``: file name → error message for rejected files
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Input directory not found: {directory}")

        session_ids: List[str] = []
        errors: Dict[str, str] = {}
        for path in sorted(directory.glob(pattern)):
            try:
                session_ids.append(self.ingest_file(path))
            except ValidationError as exc:
                logger.warning("Rejected %s: %s", path.name, exc)
                errors[path.name] = str(exc)
            except (OSError, KeyError, TypeError, ValueError) as exc:
                logger.exception("Failed to ingest %s", path.name)
                errors[path.name] = str(exc)

        logger.info("Ingestion complete: %d ingested, %d failed", len(session_ids), len(errors))
        return {
            "ingested": len(session_ids),
            "failed": len(errors),
            "session_ids": session_ids,
            "errors": errors,
        }
