"""Error taxonomy for SCORM package ingestion.

Only truly unrecoverable conditions raise; validators report data-quality
problems as result values instead.
"""
from __future__ import annotations
from typing import List, Optional


class ScormError(Exception):
    """Base class for all package ingestion errors."""


class ArchiveError(ScormError):
    """Raised when the upload is not a readable archive or lacks the manifest."""


class XmlError(ScormError):
    """Raised when the manifest is not well-formed XML."""


class ManifestValidationError(ScormError):
    """Raised when structural manifest checks fail; carries every defect."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(
            f"SCORM package validation failed: {', '.join(self.errors)}"
        )


class PackagingError(ScormError):
    """Single externally visible failure of a packaging call."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
