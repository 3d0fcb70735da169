"""
Pydantic Models for SCORM Package Data

These models describe the normalized content model produced when a SCORM 1.2 /
2004 package is ingested: organizations, items, resources, files, LOM metadata,
sequencing information and the final package record handed to the LMS layer.
"""

from typing import List, Optional, Literal, Tuple
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

ScormVersion = Literal["1.2", "2004"]
LogLevel = Literal["info", "warning", "error"]
RuleType = Literal["precondition", "postcondition", "exit"]

SUPPORTED_VERSIONS = ("1.2", "2004")


class FrozenModel(BaseModel):
    """Immutable record; sequences are stored as tuples"""
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Sequencing
# ---------------------------------------------------------------------------

class ControlMode(BaseModel):
    """Sequencing control mode flags (only the ones declared are set)"""
    choice: Optional[bool] = Field(None, description="Learner may choose activities freely")
    choiceExit: Optional[bool] = Field(None, description="Choice may target activities outside the cluster")
    flow: Optional[bool] = Field(None, description="Previous/continue navigation allowed")
    forwardOnly: Optional[bool] = Field(None, description="Backward navigation disallowed")


class RuleCondition(BaseModel):
    condition: Optional[str] = Field(None, description="Condition keyword, e.g. satisfied")
    operator: Optional[str] = Field(None, description="noOp or not")
    referencedObjective: Optional[str] = Field(None, description="Objective the condition is evaluated against")
    measureThreshold: Optional[float] = Field(None, description="Threshold for measure conditions")


class SequencingRule(BaseModel):
    type: Optional[RuleType] = Field(None, description="Rule family; None for a bare sequencingRule")
    conditions: List[RuleCondition] = Field(default_factory=list, description="Rule conditions")
    conditionCombination: Optional[str] = Field(None, description="all or any")
    action: Optional[str] = Field(None, description="Action taken when the conditions hold")


class LimitConditions(BaseModel):
    attemptLimit: Optional[int] = Field(None, description="Maximum number of attempts")
    attemptAbsoluteDurationLimit: Optional[str] = None
    attemptExperiencedDurationLimit: Optional[str] = None
    activityAbsoluteDurationLimit: Optional[str] = None
    activityExperiencedDurationLimit: Optional[str] = None
    beginTimeLimit: Optional[str] = None
    endTimeLimit: Optional[str] = None


class SequencingInfo(BaseModel):
    """Sequencing definition attached to an organization or item"""
    controlMode: Optional[ControlMode] = Field(None, description="Control mode flags")
    sequencingRules: List[SequencingRule] = Field(default_factory=list, description="Sequencing rules")
    limitConditions: Optional[LimitConditions] = Field(None, description="Attempt and duration limits")


# ---------------------------------------------------------------------------
# LOM metadata
# ---------------------------------------------------------------------------

class GeneralMetadata(FrozenModel):
    identifier: Optional[str] = None
    title: Optional[str] = None
    language: Optional[str] = None
    description: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    coverage: Optional[str] = None
    aggregationLevel: Optional[int] = None


class ContributeInfo(FrozenModel):
    role: Optional[str] = None
    entities: Tuple[str, ...] = ()
    date: Optional[str] = None


class LifecycleMetadata(FrozenModel):
    version: Optional[str] = None
    status: Optional[str] = None
    contributors: Tuple[ContributeInfo, ...] = ()


class TechnicalMetadata(FrozenModel):
    formats: Tuple[str, ...] = ()
    size: Optional[int] = Field(None, ge=0, description="Declared size in bytes")
    location: Optional[str] = None
    duration: Optional[str] = None
    installationRemarks: Optional[str] = None
    otherPlatformRequirements: Optional[str] = None


class EducationalMetadata(FrozenModel):
    interactivityType: Optional[str] = None
    interactivityLevel: Optional[int] = None
    learningResourceType: Tuple[str, ...] = ()
    semanticDensity: Optional[int] = None
    intendedEndUserRole: Tuple[str, ...] = ()
    context: Tuple[str, ...] = ()
    typicalAgeRange: Tuple[str, ...] = ()
    difficulty: Optional[int] = None
    typicalLearningTime: Optional[str] = None
    description: Optional[str] = None
    language: Tuple[str, ...] = ()


class RightsMetadata(FrozenModel):
    cost: Optional[bool] = None
    copyrightAndOtherRestrictions: Optional[bool] = None
    description: Optional[str] = None


class ClassificationInfo(FrozenModel):
    purpose: Optional[str] = None
    description: Optional[str] = None
    keywords: Tuple[str, ...] = ()


class Metadata(FrozenModel):
    """Learning Object Metadata extracted from the manifest (all optional)"""
    metadataSchema: Optional[str] = Field(None, description="Declared metadata schema, e.g. ADL SCORM")
    schemaVersion: Optional[str] = Field(None, description="Declared schema version, e.g. 1.2 or 2004 4th Edition")
    general: Optional[GeneralMetadata] = None
    lifecycle: Optional[LifecycleMetadata] = None
    technical: Optional[TechnicalMetadata] = None
    educational: Optional[EducationalMetadata] = None
    rights: Optional[RightsMetadata] = None
    classification: Tuple[ClassificationInfo, ...] = ()


# ---------------------------------------------------------------------------
# Content structure
# ---------------------------------------------------------------------------

class Item(BaseModel):
    """Node within an organization tree"""
    identifier: str = Field(..., description="Item identifier")
    title: str = Field(..., description="Item title (falls back to identifier)")
    identifierref: Optional[str] = Field(None, description="Referenced resource identifier")
    children: List["Item"] = Field(default_factory=list, description="Nested items")
    isVisible: bool = Field(default=True, description="Whether the item is shown in the table of contents")
    prerequisites: Optional[str] = Field(None, description="SCORM 1.2 prerequisites expression")
    maxTimeAllowed: Optional[str] = None
    timeLimitAction: Optional[str] = None
    dataFromLms: Optional[str] = None
    masteryScore: Optional[float] = None
    sequencing: Optional[SequencingInfo] = None


class Organization(BaseModel):
    identifier: str = Field(..., description="Organization identifier")
    title: str = Field(..., description="Organization title (falls back to identifier)")
    items: List[Item] = Field(default_factory=list, description="Top-level items")
    sequencing: Optional[SequencingInfo] = None


class ScormFile(BaseModel):
    href: str = Field(..., description="Path of the file inside the archive")
    content: bytes = Field(..., description="Raw file bytes")
    mimeType: str = Field(..., description="MIME type inferred from the extension")

    @property
    def size(self) -> int:
        return len(self.content)


class Resource(BaseModel):
    identifier: str = Field(..., description="Resource identifier")
    type: str = Field(..., description="Declared resource type, usually webcontent")
    scormType: Optional[str] = Field(None, description="adlcp scorm type: sco or asset")
    href: Optional[str] = Field(None, description="Entry point of the resource")
    files: List[ScormFile] = Field(default_factory=list, description="Files found in the archive")
    dependencies: List[str] = Field(default_factory=list, description="Identifiers of resources this one depends on")

    @property
    def size(self) -> int:
        return sum(f.size for f in self.files)


class ScormContent(BaseModel):
    """Intermediate extraction result; lives for one packaging call"""
    manifest: str = Field(..., description="Raw imsmanifest.xml text")
    organizations: List[Organization] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)
    metadata: Metadata = Field(default_factory=Metadata)

    @property
    def total_size(self) -> int:
        return sum(r.size for r in self.resources)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    valid: bool = Field(..., description="True when no structural errors were found")
    errors: List[str] = Field(default_factory=list)


class SequencingValidationResult(BaseModel):
    valid: bool = Field(..., description="True when no sequencing errors were found")
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ProcessingLogEntry(FrozenModel):
    level: LogLevel = Field(..., description="Severity of the entry")
    source: str = Field(..., description="Pipeline stage that produced the entry")
    message: str = Field(..., description="Human readable diagnostic")


class PackageRecord(FrozenModel):
    """Immutable result of a successful packaging call (metadata and log included)"""
    id: str = Field(..., description="Package identifier")
    courseId: str = Field(..., description="Associated course identifier")
    version: ScormVersion = Field(..., description="SCORM version tag")
    imsmanifestXml: str = Field(..., description="Raw manifest text")
    sizeBytes: int = Field(..., ge=0, description="Total byte size of all resource files")
    createdAt: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    metadata: Metadata = Field(default_factory=Metadata, description="Extracted LOM metadata")
    processingLog: Tuple[ProcessingLogEntry, ...] = Field(default=(), description="Non-fatal diagnostics")


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Current environment")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")
    uptime: Optional[float] = Field(None, description="Uptime in seconds")


Item.model_rebuild()
