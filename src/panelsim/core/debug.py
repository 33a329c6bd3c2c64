"""Deterministic debug collectors for structured JSON events."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol


class DebugCollector(Protocol):
    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, site: Optional[str] = None, hour: Optional[int] = None) -> None:
        ...


def _json_safe_scalar(val: Any) -> Any:
    """Convert timestamps and non-finite floats to JSON-safe representations."""
    if hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except (TypeError, ValueError):
            return str(val)
    if isinstance(val, float) and not math.isfinite(val):
        return str(val)
    return val


def _ordered(obj: Any) -> Any:
    """Recursively order mappings for deterministic JSON dumps."""
    if isinstance(obj, dict):
        return {k: _ordered(obj[k]) for k in sorted(obj)}
    if isinstance(obj, (list, tuple)):
        return [_ordered(v) for v in obj]
    return _json_safe_scalar(obj)


def _event(stage: str, payload: Dict[str, Any], ts: Any, site: Optional[str], hour: Optional[int]) -> Dict[str, Any]:
    return {
        "stage": stage,
        "ts": _json_safe_scalar(ts),
        "site": site,
        "hour": hour,
        "payload": _ordered(payload),
    }


class NullDebugCollector:
    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, site: Optional[str] = None, hour: Optional[int] = None) -> None:  # noqa: D401
        """Discard events (no-op)."""
        return


@dataclass
class ListDebugCollector:
    events: List[Dict[str, Any]] = field(default_factory=list)

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, site: Optional[str] = None, hour: Optional[int] = None) -> None:
        self.events.append(_event(stage, payload, ts, site, hour))

    def stages(self) -> List[str]:
        return [e["stage"] for e in self.events]


class JsonlDebugWriter:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("a", encoding="utf-8")

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, site: Optional[str] = None, hour: Optional[int] = None) -> None:
        json.dump(_event(stage, payload, ts, site, hour), self._fh, sort_keys=True)
        self._fh.write("\n")
        self._fh.flush()

    def finalize(self) -> None:
        self._fh.close()


class JsonDebugWriter:
    """Collect all events in memory then write a single JSON array.

    Used when callers pass a ``--debug`` path ending with ``.json`` so the audit
    is one self-contained document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._events: List[Dict[str, Any]] = []

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, site: Optional[str] = None, hour: Optional[int] = None) -> None:
        self._events.append(_event(stage, payload, ts, site, hour))

    def finalize(self) -> None:
        """Write collected events as a single JSON document."""
        self.path.write_text(json.dumps(_ordered(self._events), indent=2))


def build_debug_collector(path: str | Path) -> JsonlDebugWriter | JsonDebugWriter:
    """Factory: .json → JsonDebugWriter, otherwise JsonlDebugWriter."""
    if str(path).lower().endswith(".json"):
        return JsonDebugWriter(path)
    return JsonlDebugWriter(path)


class ScopedDebugCollector:
    """Wrapper that injects fixed site/hour context into every emit."""

    def __init__(self, inner: DebugCollector, *, site: Optional[str] = None, hour: Optional[int] = None):
        self.inner = inner
        self.site = site
        self.hour = hour

    def emit(self, stage: str, payload: Dict[str, Any], *, ts: Any, site: Optional[str] = None, hour: Optional[int] = None) -> None:
        # Explicit overrides win over scoped defaults.
        eff_site = site if site is not None else self.site
        eff_hour = hour if hour is not None else self.hour
        self.inner.emit(stage, payload, ts=ts, site=eff_site, hour=eff_hour)


__all__ = [
    "DebugCollector",
    "NullDebugCollector",
    "ListDebugCollector",
    "JsonlDebugWriter",
    "JsonDebugWriter",
    "build_debug_collector",
    "ScopedDebugCollector",
]
