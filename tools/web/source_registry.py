from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .contracts import SourceKind


@dataclass(frozen=True)
class SourceSettings:
    kind: SourceKind
    budget_s: float
    max_results: int
    enabled: bool = True


@dataclass
class SourceRegistry:
    _sources: dict[SourceKind, SourceSettings]
    _defaults: dict[str, Any]

    @classmethod
    def from_yaml(cls, path: str | None = None) -> "SourceRegistry":
        registry_path = (
            Path(path)
            if path
            else Path(__file__).resolve().parent.parent.parent / "config" / "research_sources.yaml"
        )
        if not registry_path.exists():
            raise ValueError(f"Source registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
        if not data or "sources" not in data:
            raise ValueError("Invalid source registry: missing sources")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceRegistry":
        sources: dict[SourceKind, SourceSettings] = {}
        for name, sdata in (data.get("sources") or {}).items():
            try:
                kind = SourceKind(name)
            except ValueError as e:
                raise ValueError(f"Unknown source kind in registry: {name}") from e
            if not isinstance(sdata, dict) or any(k not in sdata for k in ("budget_s", "max_results")):
                raise ValueError(f"Missing required fields for source {name}")
            budget_s = float(sdata["budget_s"])
            if budget_s <= 0:
                raise ValueError(f"budget_s must be positive for source {name}")
            sources[kind] = SourceSettings(
                kind=kind,
                budget_s=budget_s,
                max_results=int(sdata["max_results"]),
                enabled=bool(sdata.get("enabled", True)),
            )

        missing = [k.value for k in SourceKind if k not in sources]
        if missing:
            raise ValueError(f"Source registry is missing kinds: {', '.join(missing)}")

        return cls(_sources=sources, _defaults=dict(data.get("defaults") or {}))

    def budget_s(self, kind: SourceKind) -> float:
        return self._sources[kind].budget_s

    def max_results(self, kind: SourceKind) -> int:
        return self._sources[kind].max_results

    def is_enabled(self, kind: SourceKind) -> bool:
        return self._sources[kind].enabled

    def default_kinds(self) -> list[SourceKind]:
        names = self._defaults.get("enabled_kinds") or [k.value for k in SourceKind]
        return [SourceKind(n) for n in names if self.is_enabled(SourceKind(n))]

    def comment_lookup_budget_s(self) -> float:
        return float(self._defaults.get("comment_lookup_budget_s", 5.0))

    def max_budget_s(self, kinds: list[SourceKind]) -> float:
        """Upper bound on a fan-out over ``kinds``: the slowest budget, not the sum."""
        return max((self.budget_s(k) for k in kinds), default=0.0)
