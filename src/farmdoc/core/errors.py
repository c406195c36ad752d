from __future__ import annotations

from typing import Any, Optional


class ExtractionError(ValueError):
    """Base for conditions that abort extraction of one document."""

    code = "extraction_error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": str(self)}


class EmptyInputError(ExtractionError):
    code = "empty_input"

    def __init__(self, message: str = "Document has no lines or rows") -> None:
        super().__init__(message)


class MissingMarkerError(ExtractionError):
    """Raised when section markers are missing; carries what was found."""

    code = "missing_marker"

    def __init__(self, found: dict[str, Optional[int]], missing: list[str]) -> None:
        self.found = dict(found)
        self.missing = list(missing)
        super().__init__(f"Could not find section markers: {', '.join(missing)}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["found"] = self.found
        payload["missing"] = self.missing
        return payload


class UnreadableDocumentError(ExtractionError):
    code = "unreadable_document"


class UnknownFamilyError(KeyError):
    def __init__(self, family: str) -> None:
        self.family = family
        super().__init__(family)

    def __str__(self) -> str:
        return f"Unknown document family: {self.family}"
