import csv
import json
from pathlib import Path

from livefeeds.cli import main


def _read_lines(capsys) -> list:
    captured = capsys.readouterr()
    return [json.loads(line) for line in captured.out.splitlines() if line.strip()]


def test_wifi_feed_emits_one_line_per_tick(capsys) -> None:
    exit_code = main(["--feed", "wifi", "--max-ticks", "1", "--seed", "3"])

    lines = _read_lines(capsys)
    assert exit_code == 0
    assert len(lines) == 1
    assert lines[0]["feed"] == "wifi"
    assert lines[0]["tick"] == 1
    assert lines[0]["summary"]["total"] == len(lines[0]["records"])
    rssi_values = [record["rssi"] for record in lines[0]["records"]]
    assert rssi_values == sorted(rssi_values, reverse=True)


def test_detection_feed_honours_config(tmp_path: Path, capsys) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text(
        json.dumps(
            {
                "detection": {
                    "sensitivity": 0.0,
                    "maxRange": 10.0,
                    "motionThreshold": 0.5,
                    "updateInterval": 10,
                    "enableSound": False,
                    "enableVibration": False,
                }
            }
        ),
        encoding="utf-8",
    )

    exit_code = main(
        ["--feed", "detection", "--config", str(config_path), "--max-ticks", "3", "--seed", "1"]
    )

    lines = _read_lines(capsys)
    assert exit_code == 0
    assert [line["tick"] for line in lines] == [1, 2, 3]
    assert all(line["records"] == [] for line in lines)
    assert lines[0]["summary"]["total"] == 0


def test_invalid_config_exits_with_error(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text(json.dumps({"wifi": {"interval": -5}}), encoding="utf-8")

    assert main(["--config", str(config_path), "--max-ticks", "1"]) == 2


def test_export_settings_writes_document(tmp_path: Path, capsys) -> None:
    target = tmp_path / "exported.json"

    exit_code = main(["--export-settings", str(target)])

    document = json.loads(target.read_text(encoding="utf-8"))
    assert exit_code == 0
    assert set(document) == {"wifi", "detection", "exportedAt"}
    assert capsys.readouterr().out == ""


def test_csv_format_is_one_stream_with_single_header(tmp_path: Path, capsys) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text(
        json.dumps(
            {"wifi": {"interval": 10, "maxResults": 50, "showHidden": False, "minSignalStrength": -90}}
        ),
        encoding="utf-8",
    )

    exit_code = main(
        ["--config", str(config_path), "--max-ticks", "3", "--seed", "4", "--format", "csv"]
    )

    lines = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert lines[0].startswith("ssid,bssid,rssi")
    assert sum(line.startswith("ssid,") for line in lines) == 1
    rows = list(csv.DictReader(lines))
    assert rows
    assert all(row["bssid"] for row in rows)


def test_csv_header_printed_even_without_records(tmp_path: Path, capsys) -> None:
    config_path = tmp_path / "settings.json"
    config_path.write_text(
        json.dumps(
            {
                "detection": {
                    "sensitivity": 0.0,
                    "maxRange": 10.0,
                    "motionThreshold": 0.5,
                    "updateInterval": 10,
                    "enableSound": False,
                    "enableVibration": False,
                }
            }
        ),
        encoding="utf-8",
    )

    exit_code = main(
        ["--feed", "detection", "--config", str(config_path), "--max-ticks", "2", "--format", "csv"]
    )

    lines = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert lines == ["id,x,y,distance,confidence,movement,last_seen,signal_strength,source"]
