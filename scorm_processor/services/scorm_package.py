"""
SCORM Package Service
Ingests uploaded SCORM 1.2 / 2004 packages and produces package records
"""

import uuid
import logging
from datetime import datetime
from typing import List, Optional

from ..models.scorm import (
    SUPPORTED_VERSIONS,
    Metadata,
    PackageRecord,
    ProcessingLogEntry,
    ScormContent,
    SequencingValidationResult,
    ValidationResult,
)
from .content_extractor import extract_content
from .exceptions import ManifestValidationError, PackagingError
from .manifest_validator import validate_manifest
from .metadata_extractor import extract_metadata
from .sequencing import validate_sequencing

logger = logging.getLogger(__name__)


def _declared_version(metadata: Metadata) -> Optional[str]:
    """Map manifest ``schemaversion`` to a version tag, when recognizable."""
    declared = (metadata.schemaVersion or "").strip().lower()
    if not declared:
        return None
    if declared.startswith("1.2"):
        return "1.2"
    if "2004" in declared or "cam 1.3" in declared:
        return "2004"
    return None


class ScormPackageService:
    """Service for ingesting SCORM packages into normalized package records"""

    def __init__(self, run_sequencing: bool = True):
        self.run_sequencing = run_sequencing

    async def package(
        self,
        zip_bytes: bytes,
        version: str = "2004",
        course_id: Optional[str] = None,
    ) -> PackageRecord:
        """
        Package SCORM content with full validation and processing

        Args:
            zip_bytes: Uploaded zip archive
            version: "1.2" or "2004"
            course_id: Course to associate the package with (generated when omitted)

        Returns:
            PackageRecord for the ingested package

        Raises:
            PackagingError: If the archive cannot be read or the manifest is
                structurally invalid
        """
        if version not in SUPPORTED_VERSIONS:
            raise PackagingError(f"Unsupported SCORM version: {version}")

        logger.info(f"Packaging SCORM {version} content ({len(zip_bytes)} bytes)")

        try:
            content = await self.extract_content(zip_bytes)
            validation = await self.validate(content.manifest)
            if not validation.valid:
                raise ManifestValidationError(validation.errors)
        except Exception as error:
            logger.error(f"Failed to package SCORM content: {error}", exc_info=True)
            raise PackagingError(
                f"Failed to package SCORM content: {error}", cause=error
            ) from error

        processing_log: List[ProcessingLogEntry] = []

        metadata = content.metadata
        declared = _declared_version(metadata)
        if declared and declared != version:
            message = (
                f"Manifest declares schema version '{metadata.schemaVersion}' "
                f"but package was processed as SCORM {version}"
            )
            logger.warning(message)
            processing_log.append(
                ProcessingLogEntry(level="warning", source="metadata", message=message)
            )

        if version == "2004" and self.run_sequencing:
            sequencing = await self.validate_sequencing(content.manifest)
            processing_log.extend(self._sequencing_log(sequencing))

        total_size = content.total_size

        record = PackageRecord(
            id=str(uuid.uuid4()),
            courseId=course_id or str(uuid.uuid4()),
            version=version,
            imsmanifestXml=content.manifest,
            sizeBytes=total_size,
            createdAt=datetime.utcnow(),
            metadata=metadata,
            processingLog=processing_log,
        )
        logger.info(
            "SCORM package %s created: %d bytes, %d diagnostic(s)",
            record.id,
            total_size,
            len(processing_log),
        )
        return record

    def _sequencing_log(
        self, result: SequencingValidationResult
    ) -> List[ProcessingLogEntry]:
        # Sequencing defects are advisory: logged, never fatal
        entries = []
        for error in result.errors:
            logger.warning("Sequencing validation error: %s", error)
            entries.append(
                ProcessingLogEntry(level="error", source="sequencing", message=error)
            )
        for warning in result.warnings:
            logger.warning("Sequencing validation warning: %s", warning)
            entries.append(
                ProcessingLogEntry(level="warning", source="sequencing", message=warning)
            )
        return entries

    async def validate(self, manifest_xml: str) -> ValidationResult:
        """Structural manifest validation"""
        return validate_manifest(manifest_xml)

    async def extract_content(self, zip_bytes: bytes) -> ScormContent:
        """Extract organizations, resources, files and metadata from a package"""
        return extract_content(zip_bytes)

    async def validate_sequencing(self, manifest_xml: str) -> SequencingValidationResult:
        """SCORM 2004 sequencing and navigation checks"""
        return validate_sequencing(manifest_xml)

    async def extract_metadata(self, manifest_xml: str) -> Metadata:
        """LOM metadata extraction; never raises"""
        return extract_metadata(manifest_xml)
