"""
SCORM Package Router

Thin HTTP adapter over the package ingestion engine. Uploaded archives are
processed in memory; nothing is persisted here, the calling LMS owns storage.
"""

from typing import Any, Dict, Optional
import os
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Form, HTTPException

from ..models.scorm import SUPPORTED_VERSIONS, PackageRecord, ScormContent
from ..services.archive import MANIFEST_NAME, ArchiveReader
from ..services.content_extractor import DEFAULT_MIME_TYPE, MIME_TYPE_MAP
from ..services.exceptions import (
    ArchiveError,
    ManifestValidationError,
    PackagingError,
    XmlError,
)
from ..services.manifest_xml import decode_manifest
from ..services.scorm_package import ScormPackageService
from ..utils.feature_flags import is_feature_enabled
from ..utils.validation import read_package_upload, validate_version

router = APIRouter(prefix="/packages")
logger = logging.getLogger(__name__)

DEFAULT_SCORM_VERSION = os.getenv("DEFAULT_SCORM_VERSION", "2004")


def get_scorm_service() -> ScormPackageService:
    """FastAPI dependency building the ingestion service from feature flags"""
    return ScormPackageService(
        run_sequencing=is_feature_enabled("sequencing_validation")
    )


def _resolve_version(version: Optional[str]) -> str:
    return validate_version(version or DEFAULT_SCORM_VERSION)


def _read_manifest(content: bytes) -> str:
    try:
        with ArchiveReader(content) as archive:
            return decode_manifest(archive.read_text(MANIFEST_NAME))
    except (ArchiveError, XmlError) as e:
        logger.info("Manifest could not be read: %s", e)
        raise HTTPException(status_code=400, detail=str(e))


def _record_payload(record: PackageRecord, include_manifest: bool) -> Dict[str, Any]:
    exclude = set()
    if not (include_manifest or is_feature_enabled("manifest_in_response")):
        exclude.add("imsmanifestXml")
    if not is_feature_enabled("processing_log"):
        exclude.add("processingLog")
    return record.model_dump(mode="json", exclude=exclude)


def _structure_payload(content: ScormContent) -> Dict[str, Any]:
    resources = []
    for resource in content.resources:
        entry = resource.model_dump(mode="json", exclude={"files"})
        entry["files"] = [
            {"href": f.href, "mimeType": f.mimeType, "size": f.size}
            for f in resource.files
        ]
        entry["size"] = resource.size
        resources.append(entry)

    return {
        "organizations": [o.model_dump(mode="json") for o in content.organizations],
        "resources": resources,
        "total_size": content.total_size,
    }


@router.post("", summary="Ingest a SCORM Package")
async def create_package(
    version: Optional[str] = Form(None),
    course_id: Optional[str] = Form(None),
    include_manifest: bool = Form(False),
    content: bytes = Depends(read_package_upload),
    service: ScormPackageService = Depends(get_scorm_service),
):
    """
    Ingest an uploaded SCORM package

    1. Extracts the archive and reads imsmanifest.xml
    2. Builds organizations/resources, resolving every file
    3. Validates the manifest structure (fatal on failure)
    4. Runs SCORM 2004 sequencing checks (advisory only)
    5. Returns the package record with its size and diagnostics
    """
    scorm_version = _resolve_version(version)
    logger.info("Starting SCORM %s ingestion (%d bytes)", scorm_version, len(content))

    try:
        record = await service.package(
            content, version=scorm_version, course_id=course_id
        )
    except PackagingError as e:
        status_code = 422 if isinstance(e.cause, ManifestValidationError) else 400
        logger.warning("SCORM ingestion failed (%d): %s", status_code, e)
        raise HTTPException(status_code=status_code, detail=str(e))

    return {
        "success": True,
        "package": _record_payload(record, include_manifest),
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.post("/validate", summary="Validate a SCORM Package")
async def validate_package(
    version: Optional[str] = Form(None),
    content: bytes = Depends(read_package_upload),
    service: ScormPackageService = Depends(get_scorm_service),
):
    """
    Validate the manifest of an uploaded package without ingesting it

    Returns the structural validation result and, for SCORM 2004, the
    sequencing validation result.
    """
    scorm_version = _resolve_version(version)
    manifest = _read_manifest(content)

    validation = await service.validate(manifest)
    response: Dict[str, Any] = {
        "success": True,
        "version": scorm_version,
        "validation": validation.model_dump(),
        "sequencing": None,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if scorm_version == "2004":
        sequencing = await service.validate_sequencing(manifest)
        response["sequencing"] = sequencing.model_dump()
    return response


@router.post("/metadata", summary="Extract SCORM Package Metadata")
async def package_metadata(
    content: bytes = Depends(read_package_upload),
    service: ScormPackageService = Depends(get_scorm_service),
):
    """Extract the LOM metadata declared in the package manifest"""
    manifest = _read_manifest(content)
    metadata = await service.extract_metadata(manifest)
    return {
        "success": True,
        "metadata": metadata.model_dump(mode="json"),
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.post("/structure", summary="Extract SCORM Package Structure")
async def package_structure(
    content: bytes = Depends(read_package_upload),
    service: ScormPackageService = Depends(get_scorm_service),
):
    """
    Extract organizations and resources of a package

    File bodies are omitted; each file is reported with its href, MIME type
    and size.
    """
    try:
        extracted = await service.extract_content(content)
    except (ArchiveError, XmlError) as e:
        logger.info("Structure extraction failed: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        **_structure_payload(extracted),
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/formats", summary="Get Supported Package Formats")
async def get_package_formats():
    """List the SCORM versions and file types the ingestion engine understands"""
    return {
        "success": True,
        "versions": list(SUPPORTED_VERSIONS),
        "default_version": DEFAULT_SCORM_VERSION,
        "manifest": MANIFEST_NAME,
        "mime_types": MIME_TYPE_MAP,
        "default_mime_type": DEFAULT_MIME_TYPE,
        "timestamp": datetime.utcnow().isoformat(),
    }
