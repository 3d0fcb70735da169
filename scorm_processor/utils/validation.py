"""
Upload validation utilities
Server-side checks applied to uploaded SCORM packages before ingestion
"""

from typing import List, Dict, Any, Optional
from pathlib import Path
import os
import logging

from fastapi import File, HTTPException, UploadFile

from ..models.scorm import SUPPORTED_VERSIONS
from ..services.content_extractor import MIME_TYPE_MAP

logger = logging.getLogger(__name__)

MAX_PACKAGE_SIZE = int(os.getenv("MAX_PACKAGE_SIZE_MB", "200")) * 1024 * 1024
ALLOWED_EXTENSIONS = {".zip", ".pif"}
ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06")


class ValidationError:
    """Validation error structure"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


def validate_package_upload(content: bytes, filename: Optional[str]) -> List[ValidationError]:
    """
    Cheap pre-ingestion checks on an uploaded package

    Args:
        content: Uploaded bytes
        filename: Client-supplied file name (may be missing)

    Returns:
        List of validation errors
    """
    errors = []

    if len(content) == 0:
        errors.append(ValidationError("file", "Empty files are not allowed"))
        return errors

    if len(content) > MAX_PACKAGE_SIZE:
        errors.append(ValidationError(
            "file",
            f"File size ({len(content)} bytes) exceeds maximum allowed size ({MAX_PACKAGE_SIZE} bytes)"
        ))

    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix not in ALLOWED_EXTENSIONS:
            errors.append(ValidationError(
                "file",
                f"Unsupported file extension '{suffix or filename}'. Must be one of: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
            ))

    if not content.startswith(ZIP_SIGNATURES):
        errors.append(ValidationError("file", "File does not look like a zip archive"))

    return errors


def validate_version(version: str) -> str:
    """Reject unsupported SCORM version tags with a 400"""
    if version not in SUPPORTED_VERSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported SCORM version '{version}'. Must be one of: {', '.join(SUPPORTED_VERSIONS)}"
        )
    return version


# FastAPI dependency function
async def read_package_upload(file: UploadFile = File(...)) -> bytes:
    """
    FastAPI dependency that reads and pre-validates an uploaded package

    Returns:
        Uploaded archive bytes

    Raises:
        HTTPException: If the upload fails the pre-ingestion checks
    """
    content = await file.read()
    errors = validate_package_upload(content, file.filename)
    if errors:
        detail_entries = [
            {
                "type": "upload_error",
                "loc": ["body", err.field],
                "msg": err.message,
                "input": file.filename,
            }
            for err in errors
        ]
        logger.info("[read_package_upload] Upload rejected: %s", [e["msg"] for e in detail_entries])
        raise HTTPException(status_code=400, detail=detail_entries)

    logger.info("[read_package_upload] Accepted %s (%d bytes)", file.filename, len(content))
    return content


async def get_validation_status() -> Dict[str, Any]:
    """
    FastAPI dependency to get validation system status

    Returns:
        Dictionary containing validation system status
    """
    return {
        "validation_system": "operational",
        "supported_versions": list(SUPPORTED_VERSIONS),
        "max_package_size": MAX_PACKAGE_SIZE,
        "mime_types_known": len(MIME_TYPE_MAP),
        "validation_working": True,
    }
