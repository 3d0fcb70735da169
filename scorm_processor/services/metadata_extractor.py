"""
LOM Metadata Extractor

Maps the manifest-level ``metadata/lom`` subtree into a Metadata record.
Handles both the IEEE LOM binding used by SCORM 2004 (``string``,
``dateTime``, ``lifeCycle``) and the IMS MD 1.2 binding used by SCORM 1.2
(``langstring``, ``datetime``, lowercase element names). Every field is
looked up independently; a missing element only blanks that field.
"""

import logging
from typing import List, Optional

from ..models.scorm import (
    ClassificationInfo,
    ContributeInfo,
    EducationalMetadata,
    GeneralMetadata,
    LifecycleMetadata,
    Metadata,
    RightsMetadata,
    TechnicalMetadata,
)
from .manifest_xml import XmlNode, parse_int, parse_xml

logger = logging.getLogger(__name__)

# LOM vocabularies for the ordinal educational elements
LEVEL_VOCABULARY = {"very low": 1, "low": 2, "medium": 3, "high": 4, "very high": 5}
DIFFICULTY_VOCABULARY = {
    "very easy": 1,
    "easy": 2,
    "medium": 3,
    "difficult": 4,
    "very difficult": 5,
}

_TEXT_WRAPPERS = ("string", "langstring")
_DATE_WRAPPERS = ("datetime", "duration")


# ---------------------------------------------------------------------------
# Lookup helpers (case-insensitive tag matching across both bindings)
# ---------------------------------------------------------------------------

def _child(node: Optional[XmlNode], name: str) -> Optional[XmlNode]:
    if node is None:
        return None
    wanted = name.lower()
    for child in node.children:
        if child.tag.lower() == wanted:
            return child
    return None


def _children(node: Optional[XmlNode], name: str) -> List[XmlNode]:
    if node is None:
        return []
    wanted = name.lower()
    return [child for child in node.children if child.tag.lower() == wanted]


def _text(node: Optional[XmlNode]) -> Optional[str]:
    """Text of a node, unwrapping a LOM ``string``/``langstring`` child."""
    if node is None:
        return None
    if node.text:
        return node.text
    for wrapper in _TEXT_WRAPPERS:
        inner = _child(node, wrapper)
        if inner is not None and inner.text:
            return inner.text
    # 2004 identifier: <identifier><catalog/><entry>...</entry></identifier>
    entry = _child(node, "entry")
    if entry is not None:
        return _text(entry)
    return None


def _langstring(parent: Optional[XmlNode], name: str) -> Optional[str]:
    return _text(_child(parent, name))


def _vocabulary(node: Optional[XmlNode]) -> Optional[str]:
    """Value of a LOM vocabulary element (``<x><source/><value/></x>``)."""
    if node is None:
        return None
    value = _child(node, "value")
    return _text(value) if value is not None else _text(node)


def _dated(node: Optional[XmlNode]) -> Optional[str]:
    """Value of a LOM DateTime/Duration container."""
    if node is None:
        return None
    for wrapper in _DATE_WRAPPERS:
        inner = _child(node, wrapper)
        if inner is not None and inner.text:
            return inner.text
    return node.text or None


def _ordinal(value: Optional[str], vocabulary: dict) -> Optional[int]:
    if value is None:
        return None
    mapped = vocabulary.get(value.strip().lower())
    return mapped if mapped is not None else parse_int(value)


def _yes_no(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() in ("yes", "true")


# ---------------------------------------------------------------------------
# Category mappers
# ---------------------------------------------------------------------------

def _general(node: XmlNode) -> GeneralMetadata:
    return GeneralMetadata(
        identifier=_langstring(node, "identifier"),
        title=_langstring(node, "title"),
        language=_langstring(node, "language"),
        description=_langstring(node, "description"),
        keywords=[k for k in (_text(n) for n in _children(node, "keyword")) if k],
        coverage=_langstring(node, "coverage"),
        aggregationLevel=parse_int(_vocabulary(_child(node, "aggregationLevel"))),
    )


def _contributor(node: XmlNode) -> ContributeInfo:
    entities = [e for e in (_text(n) for n in _children(node, "entity")) if e]
    # IMS MD 1.2: <centity><vcard>...</vcard></centity>
    for centity in _children(node, "centity"):
        vcard = _text(_child(centity, "vcard")) or _text(centity)
        if vcard:
            entities.append(vcard)
    return ContributeInfo(
        role=_vocabulary(_child(node, "role")),
        entities=entities,
        date=_dated(_child(node, "date")),
    )


def _lifecycle(node: XmlNode) -> LifecycleMetadata:
    return LifecycleMetadata(
        version=_langstring(node, "version"),
        status=_vocabulary(_child(node, "status")),
        contributors=[_contributor(c) for c in _children(node, "contribute")],
    )


def _technical(node: XmlNode) -> TechnicalMetadata:
    size = parse_int(_text(_child(node, "size")))
    return TechnicalMetadata(
        formats=[f for f in (_text(n) for n in _children(node, "format")) if f],
        size=size if size is not None and size >= 0 else None,
        location=_text(_child(node, "location")),
        duration=_dated(_child(node, "duration")),
        installationRemarks=_langstring(node, "installationRemarks"),
        otherPlatformRequirements=_langstring(node, "otherPlatformRequirements"),
    )


def _vocabulary_list(node: XmlNode, name: str) -> List[str]:
    return [v for v in (_vocabulary(n) for n in _children(node, name)) if v]


def _educational(node: XmlNode) -> EducationalMetadata:
    return EducationalMetadata(
        interactivityType=_vocabulary(_child(node, "interactivityType")),
        interactivityLevel=_ordinal(
            _vocabulary(_child(node, "interactivityLevel")), LEVEL_VOCABULARY
        ),
        learningResourceType=_vocabulary_list(node, "learningResourceType"),
        semanticDensity=_ordinal(
            _vocabulary(_child(node, "semanticDensity")), LEVEL_VOCABULARY
        ),
        intendedEndUserRole=_vocabulary_list(node, "intendedEndUserRole"),
        context=_vocabulary_list(node, "context"),
        typicalAgeRange=[
            r for r in (_text(n) for n in _children(node, "typicalAgeRange")) if r
        ],
        difficulty=_ordinal(
            _vocabulary(_child(node, "difficulty")), DIFFICULTY_VOCABULARY
        ),
        typicalLearningTime=_dated(_child(node, "typicalLearningTime")),
        description=_langstring(node, "description"),
        language=[lang for lang in (_text(n) for n in _children(node, "language")) if lang],
    )


def _rights(node: XmlNode) -> RightsMetadata:
    return RightsMetadata(
        cost=_yes_no(_vocabulary(_child(node, "cost"))),
        copyrightAndOtherRestrictions=_yes_no(
            _vocabulary(_child(node, "copyrightAndOtherRestrictions"))
        ),
        description=_langstring(node, "description"),
    )


def _classification(node: XmlNode) -> ClassificationInfo:
    return ClassificationInfo(
        purpose=_vocabulary(_child(node, "purpose")),
        description=_langstring(node, "description"),
        keywords=[k for k in (_text(n) for n in _children(node, "keyword")) if k],
    )


# (Metadata field, LOM element, mapper); element lookup is case-insensitive
_CATEGORIES = (
    ("general", "general", _general),
    ("lifecycle", "lifeCycle", _lifecycle),
    ("technical", "technical", _technical),
    ("educational", "educational", _educational),
    ("rights", "rights", _rights),
)


def _build_metadata(root: XmlNode) -> Metadata:
    manifest_metadata = _child(root, "metadata")
    fields = {
        "metadataSchema": _text(_child(manifest_metadata, "schema")),
        "schemaVersion": _text(_child(manifest_metadata, "schemaversion")),
    }

    lom = _child(manifest_metadata, "lom")
    if lom is not None:
        for field, element, mapper in _CATEGORIES:
            node = _child(lom, element)
            if node is not None:
                fields[field] = mapper(node)
        fields["classification"] = [
            _classification(node) for node in _children(lom, "classification")
        ]

    # Metadata is frozen, so it is built in one go
    return Metadata(**fields)


def extract_metadata(manifest_xml: str) -> Metadata:
    """
    Extract LOM metadata from a manifest

    Never raises: any failure is logged and degrades to an empty Metadata.

    Args:
        manifest_xml: Raw manifest text

    Returns:
        Metadata record (empty when no ``metadata/lom`` is declared)
    """
    try:
        return _build_metadata(parse_xml(manifest_xml))
    except Exception as e:
        logger.warning(f"Failed to extract metadata: {e}")
        return Metadata()
