"""
Content Extractor

Builds the organization/item tree and the resource/file list of a SCORM
package, pulling every referenced file out of the archive and tagging it
with a MIME type. Files listed in the manifest but missing from the archive
are skipped without error: real-world packages frequently ship stale
manifests.
"""

import logging
from pathlib import PurePosixPath
from typing import List, Optional

from ..models.scorm import Item, Organization, Resource, ScormContent, ScormFile
from .archive import MANIFEST_NAME, ArchiveReader
from .exceptions import ArchiveError, XmlError
from .manifest_xml import XmlNode, decode_manifest, parse_float, parse_xml
from .metadata_extractor import extract_metadata
from .sequencing import parse_sequencing

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

# Read-only; shared by every extraction
MIME_TYPE_MAP = {
    ".html": "text/html",
    ".htm": "text/html",
    ".xml": "application/xml",
    ".xsd": "application/xml",
    ".dtd": "application/xml-dtd",
    ".js": "application/javascript",
    ".json": "application/json",
    ".css": "text/css",
    ".txt": "text/plain",
    ".vtt": "text/vtt",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".pdf": "application/pdf",
    ".swf": "application/x-shockwave-flash",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "audio/ogg",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".wav": "audio/wav",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}

# SCORM 1.2 item data may be given as attributes or as adlcp child elements
_ITEM_DATA_FIELDS = {
    "prerequisites": "prerequisites",
    "maxtimeallowed": "maxTimeAllowed",
    "timelimitaction": "timeLimitAction",
    "datafromlms": "dataFromLms",
}


def get_mime_type(filename: str) -> str:
    """Map a file name to a MIME type using the static extension table"""
    return MIME_TYPE_MAP.get(PurePosixPath(filename).suffix.lower(), DEFAULT_MIME_TYPE)


def _title(node: XmlNode, fallback: str) -> str:
    return node.child_text("title") or fallback


def _item_value(node: XmlNode, name: str) -> Optional[str]:
    value = node.attr_ci(name)
    if value is None:
        value = node.child_text(name)
    return value


def _item(node: XmlNode) -> Item:
    identifier = node.attr("identifier") or ""
    item = Item(
        identifier=identifier,
        title=_title(node, identifier),
        identifierref=node.attr("identifierref") or None,
        isVisible=(node.attr_ci("isvisible") or "true").strip().lower() != "false",
        masteryScore=parse_float(_item_value(node, "masteryscore")),
        **{field: _item_value(node, name) for name, field in _ITEM_DATA_FIELDS.items()},
    )

    sequencing = node.first_child_named("sequencing")
    if sequencing is not None:
        item.sequencing = parse_sequencing(sequencing)
    return item


def _extract_items(parent: XmlNode) -> List[Item]:
    """Map the ``item`` children of a node into Item trees, in document order."""
    items: List[Item] = []
    # Explicit stack of (node, list the mapped Item is appended to)
    stack = [(node, items) for node in reversed(parent.children_named("item"))]
    while stack:
        node, siblings = stack.pop()
        item = _item(node)
        siblings.append(item)
        stack.extend(
            (child, item.children) for child in reversed(node.children_named("item"))
        )
    return items


def extract_organizations(root: XmlNode) -> List[Organization]:
    organizations_node = root.first_child_named("organizations")
    if organizations_node is None:
        return []

    organizations = []
    for node in organizations_node.children_named("organization"):
        identifier = node.attr("identifier") or ""
        organization = Organization(
            identifier=identifier,
            title=_title(node, identifier),
            items=_extract_items(node),
        )
        sequencing = node.first_child_named("sequencing")
        if sequencing is not None:
            organization.sequencing = parse_sequencing(sequencing)
        organizations.append(organization)
    return organizations


def _extract_files(node: XmlNode, archive: ArchiveReader) -> List[ScormFile]:
    files = []
    for file_node in node.children_named("file"):
        href = file_node.attr("href")
        if not href:
            continue
        content = archive.entry(href)
        if content is None:
            logger.debug("Skipping %s: not present in archive", href)
            continue
        files.append(ScormFile(href=href, content=content, mimeType=get_mime_type(href)))
    return files


def extract_resources(root: XmlNode, archive: ArchiveReader) -> List[Resource]:
    resources_node = root.first_child_named("resources")
    if resources_node is None:
        return []

    return [
        Resource(
            identifier=node.attr("identifier") or "",
            type=node.attr("type") or "",
            scormType=node.attr_ci("scormtype"),
            href=node.attr("href"),
            files=_extract_files(node, archive),
            dependencies=[
                dep.attr("identifierref")
                for dep in node.children_named("dependency")
                if dep.attr("identifierref")
            ],
        )
        for node in resources_node.children_named("resource")
    ]


def extract_content(archive_bytes: bytes) -> ScormContent:
    """
    Extract the full content model from a SCORM package

    Args:
        archive_bytes: Uploaded zip archive

    Returns:
        ScormContent with organizations, resources and metadata

    Raises:
        ArchiveError: If the archive is invalid or has no manifest
        XmlError: If the manifest is not well-formed XML
    """
    try:
        with ArchiveReader(archive_bytes) as archive:
            manifest = decode_manifest(archive.read_text(MANIFEST_NAME))
            root = parse_xml(manifest)
            organizations = extract_organizations(root)
            resources = extract_resources(root, archive)
    except ArchiveError as e:
        raise ArchiveError(f"Failed to extract SCORM content: {e}") from e
    except XmlError as e:
        raise XmlError(f"Failed to extract SCORM content: {e}") from e

    content = ScormContent(
        manifest=manifest,
        organizations=organizations,
        resources=resources,
        metadata=extract_metadata(manifest),
    )
    logger.info(
        "Extracted %d organization(s), %d resource(s), %d byte(s)",
        len(organizations),
        len(resources),
        content.total_size,
    )
    return content
