import base64
import json

import pytest

from isodash.pipeline import SessionIngestor


@pytest.fixture
def ingestor(store):
    return SessionIngestor(store)


@pytest.fixture
def producer_payload(make_session, cs_co_detections, cs_co_masses, png_bytes):
    """A complete producer document as the upstream analysis writes it."""
    payload = make_session(analysis_id="run-0001", metadata={"detector": "HPGe-1"})
    payload.update({
        "detections": cs_co_detections,
        "mass_estimates": cs_co_masses,
        "plots": [
            {"plot_type": "overview", "title": "Spectrum",
             "payload_base64": base64.b64encode(png_bytes).decode("ascii")},
            {"plot_type": "roi", "title": "Cs-137 ROI",
             "payload_base64": "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii"),
             "metadata": {"isotope": "Cs-137", "energy": 661.7}},
        ],
    })
    return payload


@pytest.fixture
def write_payload(tmp_path):
    """Write a payload (dict or raw text) to tmp_path/incoming/<name>."""
    incoming = tmp_path / "incoming"
    incoming.mkdir(exist_ok=True)

    def _write(name, payload):
        path = incoming / name
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
        return path

    return _write
