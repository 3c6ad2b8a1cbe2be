"""
Diagnostic collector for non-fatal data problems.

Corrupt persisted payloads must never block the planner, but coaches still
need to hear about them. Problems are logged when found and kept here so the
API layer can report them.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class DiagnosticLog:
    """Collects non-fatal problems found while reading plan data."""
    entries: List[Dict[str, object]] = field(default_factory=list)

    def add_corrupt_payload(self, source: str, reason: str, ordinal: Optional[int] = None) -> None:
        """Record a payload that could not be decoded and was treated as empty."""
        entry = self._find(source, ordinal)
        if entry is not None:
            entry["reason"] = reason
            return
        self.entries.append({
            "kind": "corrupt_payload",
            "source": source,
            "ordinal": ordinal,
            "reason": reason,
        })

    def add_warning(self, source: str, message: str) -> None:
        self.entries.append({"kind": "warning", "source": source, "reason": message})

    def clear(self) -> None:
        self.entries.clear()

    def has_problems(self) -> bool:
        return bool(self.entries)

    def to_list(self) -> List[Dict[str, object]]:
        return [dict(entry) for entry in self.entries]

    def _find(self, source: str, ordinal: Optional[int]) -> Optional[Dict[str, object]]:
        for entry in self.entries:
            if entry["kind"] == "corrupt_payload" and entry["source"] == source and entry["ordinal"] == ordinal:
                return entry
        return None
