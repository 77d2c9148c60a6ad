from __future__ import annotations

import csv
from dataclasses import fields
from datetime import datetime, timezone
import io
import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Type

from .config import DetectionSettings, ScanSettings, SettingsError, default_settings
from .models import Record, record_to_dict

EXPORT_FORMATS = ("json", "csv")


def export_settings(
    scan: ScanSettings,
    detection: DetectionSettings,
    exported_at: Optional[datetime] = None,
) -> Dict[str, object]:
    if exported_at is None:
        exported_at = datetime.now(timezone.utc)
    return {
        "wifi": scan.to_dict(),
        "detection": detection.to_dict(),
        "exportedAt": exported_at.isoformat(),
    }


def load_settings_document(
    payload: Mapping[str, object],
) -> Tuple[ScanSettings, DetectionSettings]:
    """Parse a settings document; absent sections fall back to defaults."""
    if not isinstance(payload, Mapping):
        raise SettingsError("Settings document must be an object.")
    scan, detection = default_settings()
    if payload.get("wifi") is not None:
        scan = ScanSettings.from_mapping(payload["wifi"])
    if payload.get("detection") is not None:
        detection = DetectionSettings.from_mapping(payload["detection"])
    return scan, detection


def dump_settings(
    path: Path,
    scan: ScanSettings,
    detection: DetectionSettings,
) -> Dict[str, object]:
    document = export_settings(scan, detection)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(document, handle, indent=2)
        handle.write("\n")
    return document


def load_settings(path: Path) -> Tuple[ScanSettings, DetectionSettings]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise SettingsError(f"Settings file {path} is not valid JSON: {exc}") from exc
    return load_settings_document(payload)


def reset_to_defaults() -> Tuple[ScanSettings, DetectionSettings]:
    return default_settings()


def record_fieldnames(record_type: Type[Record]) -> List[str]:
    return [item.name for item in fields(record_type)]


def csv_header(record_type: Type[Record]) -> str:
    return ",".join(record_fieldnames(record_type)) + "\n"


def export_records(records: Sequence[Record], fmt: str = "json", *, header: bool = True) -> str:
    """Render records as a JSON array or CSV.

    With ``header=False`` the CSV has rows only, for appending to a stream that
    already started with ``csv_header``.
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format {fmt!r}; expected one of {EXPORT_FORMATS}.")
    rows = [record_to_dict(record) for record in records]
    if fmt == "json":
        return json.dumps(rows, indent=2)
    if not records:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=record_fieldnames(type(records[0])),
        lineterminator="\n",
    )
    if header:
        writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()
