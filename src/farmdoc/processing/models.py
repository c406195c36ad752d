from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class FieldType(str, Enum):
    TEXT = "text"
    IDENTITY_TAG = "identity-tag"
    DATE = "date"
    TIME = "time"
    NUMBER = "number"
    BOOLEAN = "boolean"
    CATEGORY = "category"
    FREE_TEXT = "free-text"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: FieldType = FieldType.TEXT
    vocabulary: Optional[str] = None  # category vocabulary key
    lowercase: bool = False


@dataclass(frozen=True)
class Schema:
    name: str
    fields: tuple[FieldSpec, ...]

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"Schema {self.name!r} has duplicate field names")

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    @classmethod
    def of(cls, name: str, *fields: FieldSpec | str) -> "Schema":
        specs = tuple(f if isinstance(f, FieldSpec) else FieldSpec(f) for f in fields)
        return cls(name=name, fields=specs)


@dataclass
class SectionMetadata:
    schema_source: str
    columns: list[str]
    variant: Optional[str] = None
    ambiguous: bool = False
    header_detected: bool = False
    snapshot_key: Optional[str] = None
    row_count: int = 0
    skipped: int = 0
    blank_rows: int = 0
    duplicates_dropped: int = 0
    patterns: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_source": self.schema_source,
            "variant": self.variant,
            "ambiguous": self.ambiguous,
            "header_detected": self.header_detected,
            "snapshot_key": self.snapshot_key,
            "count": self.row_count,
            "skipped": self.skipped,
            "blank_rows": self.blank_rows,
            "duplicates_dropped": self.duplicates_dropped,
            "patterns": dict(self.patterns),
        }


@dataclass
class SectionResult:
    name: str
    columns: list[str]
    records: list[dict[str, Any]]
    metadata: SectionMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "records": self.records,
            "meta": self.metadata.to_dict(),
        }


@dataclass
class ExtractionResult:
    family: str
    sections: list[SectionResult]
    document: Optional[dict[str, Any]] = None

    @property
    def records(self) -> list[dict[str, Any]]:
        return [r for s in self.sections for r in s.records]

    @property
    def count(self) -> int:
        return sum(len(s.records) for s in self.sections)

    @property
    def skipped(self) -> int:
        return sum(s.metadata.skipped for s in self.sections)

    def section(self, name: str) -> SectionResult:
        for s in self.sections:
            if s.name == name:
                return s
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "family": self.family,
            "count": self.count,
            "skipped": self.skipped,
            "sections": [s.to_dict() for s in self.sections],
        }
        if self.document is not None:
            payload["document"] = self.document
        return payload
