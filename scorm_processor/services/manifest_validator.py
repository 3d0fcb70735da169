"""
Manifest Validator

Structural checks over imsmanifest.xml. Every defect is collected; the
caller decides what to do with the list. Only a missing/incorrect root
element stops the walk early since nothing below it can be trusted.
"""

import logging
from typing import List, Set

from ..models.scorm import ValidationResult
from .exceptions import XmlError
from .manifest_xml import XmlNode, parse_xml

logger = logging.getLogger(__name__)


def validate_manifest(manifest_xml: str) -> ValidationResult:
    """
    Validate the structure of a manifest document

    Args:
        manifest_xml: Raw manifest text

    Returns:
        ValidationResult with every structural defect found
    """
    errors: List[str] = []

    try:
        root = parse_xml(manifest_xml)
    except XmlError as e:
        errors.append(f"XML parsing error: {e}")
        return ValidationResult(valid=False, errors=errors)

    if root.tag != "manifest":
        errors.append("Missing required manifest root element")
        return ValidationResult(valid=False, errors=errors)

    errors.extend(_validate_root_attributes(root))
    errors.extend(_validate_organizations(root))
    errors.extend(_validate_resources(root))
    errors.extend(_validate_item_references(root))

    errors = list(dict.fromkeys(errors))
    if errors:
        logger.info("Manifest validation found %d error(s)", len(errors))
    return ValidationResult(valid=not errors, errors=errors)


def _validate_root_attributes(root: XmlNode) -> List[str]:
    errors = []
    for attribute in ("identifier", "version"):
        if not root.attr(attribute):
            errors.append(f"Missing required manifest attribute: {attribute}")
    return errors


def _validate_organizations(root: XmlNode) -> List[str]:
    organizations = root.first_descendant_named("organizations")
    if organizations is None:
        return ["Missing required organizations element"]

    default_org = organizations.attr("default")
    if not default_org:
        return ["Missing required organizations attribute: default"]

    declared = {
        org.attr("identifier")
        for org in organizations.iter_descendants("organization")
    }
    if default_org not in declared:
        return [f"Default organization '{default_org}' not found"]
    return []


def _validate_resources(root: XmlNode) -> List[str]:
    resources = root.first_descendant_named("resources")
    if resources is None:
        return ["Missing required resources element"]

    errors = []
    for index, resource in enumerate(resources.iter_descendants("resource")):
        identifier = resource.attr("identifier")
        resource_type = resource.attr("type")

        if not identifier:
            errors.append(
                f"Missing required resource attribute: identifier for resource {index}"
            )
        if not resource_type:
            errors.append(
                f"Missing required resource attribute: type for resource {identifier or index}"
            )
        if resource_type == "webcontent" and not resource.attr("href"):
            errors.append(
                f"Missing required resource attribute: href for webcontent resource {identifier or index}"
            )
    return errors


def _validate_item_references(root: XmlNode) -> List[str]:
    # Resources are collected document-wide to tolerate nested declarations
    resource_ids: Set[str] = {
        resource.attr("identifier")
        for resource in root.iter_descendants("resource")
        if resource.attr("identifier")
    }

    errors = []
    for item in root.iter_descendants("item"):
        identifierref = item.attr("identifierref")
        if identifierref and identifierref not in resource_ids:
            errors.append(f"Item references non-existent resource: {identifierref}")
    return errors
