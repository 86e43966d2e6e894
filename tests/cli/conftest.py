import json
import logging

import pytest


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def base_args(temp_dir):
    return ["--base-dir", str(temp_dir)]


@pytest.fixture
def payload_file(tmp_path, make_session, cs_co_detections, cs_co_masses):
    payload = make_session(analysis_id="run-0001")
    payload.update({"detections": cs_co_detections, "mass_estimates": cs_co_masses})
    path = tmp_path / "run-0001.json"
    path.write_text(json.dumps(payload))
    return path
