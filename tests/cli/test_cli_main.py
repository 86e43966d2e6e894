import pandas as pd
import pytest

from isodash.cli.main import build_parser, main

pytestmark = pytest.mark.integration


def test_ingest_then_latest(base_args, payload_file, capsys):
    assert main(base_args + ["ingest", str(payload_file)]) == 0
    assert "run-0001" in capsys.readouterr().out

    assert main(base_args + ["latest"]) == 0
    out = capsys.readouterr().out
    assert "soil_07.spe" in out
    assert "Cs-137" in out


def test_ingest_directory_reports_failures(base_args, payload_file, tmp_path, capsys):
    (tmp_path / "zz_broken.json").write_text("{")

    assert main(base_args + ["ingest", str(tmp_path)]) == 1
    out = capsys.readouterr().out
    assert "Ingested: 1  Failed: 1" in out
    assert "zz_broken.json" in out


def test_frequency_without_data(base_args, capsys):
    assert main(base_args + ["frequency"]) == 0
    assert "No data" in capsys.readouterr().out


def test_ranking_and_overview(base_args, payload_file, capsys):
    main(base_args + ["ingest", str(payload_file)])
    capsys.readouterr()

    assert main(base_args + ["ranking", "Cs-137"]) == 0
    assert "run-0001" in capsys.readouterr().out

    assert main(base_args + ["overview"]) == 0
    assert "completed_analyses" in capsys.readouterr().out


def test_show_unknown_session_fails(base_args, capsys):
    assert main(base_args + ["show", "missing"]) == 1
    assert "Session not found" in capsys.readouterr().err


def test_status_and_delete(base_args, payload_file, capsys):
    main(base_args + ["ingest", str(payload_file)])

    assert main(base_args + ["status", "run-0001", "failed"]) == 0
    assert main(base_args + ["delete", "run-0001"]) == 0
    assert main(base_args + ["delete", "run-0001"]) == 1


def test_export_with_user_config(tmp_path, temp_dir, payload_file, capsys):
    config_file = tmp_path / "user_config.py"
    config_file.write_text(f'CONFIG = {{"BASE_DIR": "{temp_dir}", "EXPORT_FORMAT": "csv"}}\n')

    main(["--config", str(config_file), "ingest", str(payload_file)])
    capsys.readouterr()

    assert main(["--config", str(config_file), "export", "detections"]) == 0
    path = capsys.readouterr().out.strip()
    assert path.endswith("detections.csv")
    assert len(pd.read_csv(path)) == 3


def test_logs_written_under_base_dir(base_args, temp_dir):
    main(base_args + ["-v", "overview"])
    assert (temp_dir / "logs" / "isodash.log").exists()


def test_parser_rejects_unknown_view():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["export", "everything"])
