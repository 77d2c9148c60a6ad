from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import logging
from pathlib import Path
import threading
from typing import List, Optional, Sequence

from .config import DetectionSettings, ScanSettings, SettingsError
from .engine import FeedEngine, create_detection_engine, create_network_engine
from .models import HumanDetection, WiFiNetwork
from .export import csv_header, dump_settings, export_records, load_settings
from .motion import MotionSourceError, SerialMotionConfig, SerialMotionSource
from .randomness import seeded
from .working_set import summarize_detections, summarize_networks

LOGGER = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _load_settings(path: Optional[str]) -> tuple[ScanSettings, DetectionSettings]:
    if path is None:
        return ScanSettings(), DetectionSettings()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    return load_settings(config_path)


def _poll_motion(
    source: SerialMotionSource,
    stop_event: threading.Event,
    interval_seconds: float,
) -> None:
    while not stop_event.is_set():
        try:
            source.poll()
        except MotionSourceError as exc:
            LOGGER.error("Motion source unavailable: %s", exc)
            return
        except Exception as exc:  # pragma: no cover - hardware failures
            LOGGER.exception("Motion source failed: %s", exc)
            return
        stop_event.wait(interval_seconds)


def _emit_tick(feed: str, tick: int, records: List[object], fmt: str) -> None:
    if fmt == "csv":
        print(export_records(records, fmt="csv", header=False), end="", flush=True)
        return
    if feed == "wifi":
        summary = summarize_networks(records)
    else:
        summary = summarize_detections(records)
    payload = {
        "feed": feed,
        "tick": tick,
        "records": [asdict(record) for record in records],
        "summary": summary,
    }
    print(json.dumps(payload), flush=True)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run a simulated Wi-Fi scan or presence detection feed."
    )
    parser.add_argument(
        "--feed",
        choices=("wifi", "detection"),
        default="wifi",
        help="Which feed to run (default: wifi).",
    )
    parser.add_argument(
        "--config",
        help="Path to a JSON settings document (wifi/detection sections).",
    )
    parser.add_argument(
        "--max-ticks",
        type=int,
        default=0,
        help="Stop after N delivered ticks (0 = run forever).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random source, for reproducible runs.",
    )
    parser.add_argument(
        "--motion-port",
        help="Serial port of an accelerometer feeding the detection feed.",
    )
    parser.add_argument(
        "--format",
        choices=("ndjson", "csv"),
        default="ndjson",
        help="Output format per tick (default: ndjson).",
    )
    parser.add_argument(
        "--export-settings",
        help="Write the effective settings document to this path and exit.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO).",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    try:
        scan_settings, detection_settings = _load_settings(args.config)
    except SettingsError as exc:
        LOGGER.error("Invalid settings: %s", exc)
        return 2

    if args.export_settings:
        dump_settings(Path(args.export_settings), scan_settings, detection_settings)
        LOGGER.info("Wrote settings to %s", args.export_settings)
        return 0

    rng = seeded(args.seed)
    motion_source: Optional[SerialMotionSource] = None
    stop_event = threading.Event()
    if args.feed == "wifi":
        engine: FeedEngine = create_network_engine(scan_settings, rng=rng)
    else:
        if args.motion_port:
            motion_source = SerialMotionSource(SerialMotionConfig(port=args.motion_port))
            threading.Thread(
                target=_poll_motion,
                args=(motion_source, stop_event, 0.05),
                name="livefeeds-motion",
                daemon=True,
            ).start()
        engine = create_detection_engine(
            detection_settings,
            motion_source=motion_source,
            rng=rng,
        )

    max_ticks = max(args.max_ticks, 0)
    ticks = 0
    subscription = engine.subscribe()
    if args.format == "csv":
        record_type = WiFiNetwork if args.feed == "wifi" else HumanDetection
        print(csv_header(record_type), end="", flush=True)
    try:
        engine.start()
        for records in subscription:
            ticks += 1
            _emit_tick(args.feed, ticks, records, args.format)
            if max_ticks and ticks >= max_ticks:
                break
    except KeyboardInterrupt:
        return 0
    finally:
        stop_event.set()
        engine.close()
        if motion_source is not None:
            motion_source.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
