"""Local telemetry log for provisioning and build runs.

Events are appended as JSON lines to ``<home>/logs/telemetry.jsonl`` and checked
against the packaged schema before they are written. Set
``LYNXFORGE_TELEMETRY=0`` to turn recording off.
"""

from __future__ import annotations

import json
import os
import time
from importlib import resources
from typing import Any, Iterable, Iterator

import jsonschema

from lynxforge.settings import RuntimeSettings

LEVELS = ("info", "warn", "error")

_DISABLE_VALUES = {"0", "false", "no", "off"}

_VALIDATOR: jsonschema.Draft202012Validator | None = None


def telemetry_enabled() -> bool:
    return os.getenv("LYNXFORGE_TELEMETRY", "1").strip().lower() not in _DISABLE_VALUES


def record_event(settings: RuntimeSettings, event: str, payload: dict[str, Any] | None = None, **extra: Any) -> None:
    record_structured_event(settings, event, payload=payload, **extra)


def record_failure(
    settings: RuntimeSettings,
    event: str,
    exc: BaseException,
    *,
    payload: dict[str, Any] | None = None,
    component: str | None = None,
    duration_ms: float | None = None,
) -> None:
    """Record ``exc`` as an error event; remediation hints travel with it."""

    details = dict(payload or {})
    details["error"] = str(exc)
    details["error_type"] = type(exc).__name__
    remediation = getattr(exc, "remediation", None)
    if remediation:
        details["remediation"] = remediation
    record_structured_event(
        settings,
        event,
        payload=details,
        level="error",
        status="error",
        component=component,
        duration_ms=duration_ms,
    )


def record_structured_event(
    settings: RuntimeSettings,
    event: str,
    *,
    payload: dict[str, Any] | None = None,
    level: str = "info",
    status: str | None = None,
    component: str | None = None,
    duration_ms: float | None = None,
) -> None:
    if not telemetry_enabled():
        return
    if not isinstance(event, str) or not event.strip():
        raise ValueError("Telemetry event name must be a non-empty string")
    if level not in LEVELS:
        raise ValueError(f"Telemetry level '{level}' is not supported")
    record: dict[str, Any] = {
        "ts": time.time(),
        "event": event,
        "payload": dict(payload or {}),
        "level": level,
    }
    if status:
        record["status"] = status
    if component:
        record["component"] = component
    if duration_ms is not None:
        record["durationMs"] = round(float(duration_ms), 3)
    _validator().validate(record)

    log_path = settings.telemetry_file
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def iter_events(settings: RuntimeSettings, *, prefix: str | None = None) -> Iterator[dict[str, Any]]:
    """Yield logged events in order, optionally only those whose name starts with ``prefix``."""

    log_path = settings.telemetry_file
    if not log_path.exists():
        return
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                evt = json.loads(line)
            except json.JSONDecodeError:
                continue
            if prefix and not str(evt.get("event", "")).startswith(prefix):
                continue
            yield evt


def summarize(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    total = 0
    by_event: dict[str, int] = {}
    by_status: dict[str, int] = {}
    by_component: dict[str, int] = {}
    durations: dict[str, list[float]] = {}
    last_error: dict[str, Any] | None = None
    for evt in events:
        total += 1
        name = evt.get("event", "unknown")
        by_event[name] = by_event.get(name, 0) + 1
        status = evt.get("status", "unknown")
        by_status[status] = by_status.get(status, 0) + 1
        component = evt.get("component")
        if component:
            by_component[component] = by_component.get(component, 0) + 1
        if isinstance(evt.get("durationMs"), (int, float)):
            durations.setdefault(name, []).append(float(evt["durationMs"]))
        if evt.get("level") == "error":
            payload = evt.get("payload") or {}
            last_error = {"event": name, "error": payload.get("error"), "ts": evt.get("ts")}
    return {
        "total": total,
        "by_event": by_event,
        "by_status": by_status,
        "by_component": by_component,
        "avg_duration_ms": {name: round(sum(vals) / len(vals), 3) for name, vals in durations.items()},
        "last_error": last_error,
    }


def clear(settings: RuntimeSettings) -> None:
    settings.telemetry_file.unlink(missing_ok=True)


def _validator() -> jsonschema.Draft202012Validator:
    global _VALIDATOR
    if _VALIDATOR is None:
        schema_text = (resources.files("lynxforge.resources") / "telemetry.schema.json").read_text(encoding="utf-8")
        _VALIDATOR = jsonschema.Draft202012Validator(json.loads(schema_text))
    return _VALIDATOR
