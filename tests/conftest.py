"""
Pytest configuration and fixtures for SCORM package processor testing
"""

import io
import os
import zipfile
from typing import Dict, Optional, Union

import pytest
from fastapi.testclient import TestClient

# Set test environment
os.environ["ENVIRONMENT"] = "test"

from scorm_processor.main import app


SCORM_12_MANIFEST = """<?xml version="1.0" encoding="UTF-8"?>
<manifest identifier="com.example.basic12" version="1.0"
          xmlns="http://www.imsproject.org/xsd/imscp_rootv1p1p2"
          xmlns:adlcp="http://www.adlnet.org/xsd/adlcp_rootv1p2">
  <metadata>
    <schema>ADL SCORM</schema>
    <schemaversion>1.2</schemaversion>
    <lom xmlns="http://www.imsglobal.org/xsd/imsmd_rootv1p2p1">
      <general>
        <title><langstring xml:lang="en">Basic Course</langstring></title>
        <language>en</language>
        <description><langstring>Introductory course</langstring></description>
        <keyword><langstring>intro</langstring></keyword>
        <keyword><langstring>basics</langstring></keyword>
      </general>
    </lom>
  </metadata>
  <organizations default="ORG-1">
    <organization identifier="ORG-1">
      <title>Basic Course</title>
      <item identifier="ITEM-1" identifierref="RES-1">
        <title>Lesson 1</title>
        <adlcp:masteryscore>80</adlcp:masteryscore>
      </item>
    </organization>
  </organizations>
  <resources>
    <resource identifier="RES-1" type="webcontent" adlcp:scormtype="sco" href="index.html">
      <file href="index.html"/>
    </resource>
  </resources>
</manifest>
"""

SCORM_2004_MANIFEST = """<?xml version="1.0" encoding="UTF-8"?>
<manifest identifier="com.example.seq2004" version="1.0"
          xmlns="http://www.imsglobal.org/xsd/imscp_v1p1"
          xmlns:adlcp="http://www.adlnet.org/xsd/adlcp_v1p3"
          xmlns:imsss="http://www.imsglobal.org/xsd/imsss">
  <metadata>
    <schema>ADL SCORM</schema>
    <schemaversion>2004 4th Edition</schemaversion>
  </metadata>
  <organizations default="ORG-1">
    <organization identifier="ORG-1">
      <title>Sequenced Course</title>
      <item identifier="ITEM-1" identifierref="RES-1">
        <title>Module 1</title>
        <item identifier="ITEM-1-1" identifierref="RES-1" isvisible="false">
          <title>Hidden Lesson</title>
        </item>
      </item>
      <imsss:sequencing>
        <imsss:controlMode choice="true" flow="true"/>
      </imsss:sequencing>
    </organization>
  </organizations>
  <resources>
    <resource identifier="RES-1" type="webcontent" adlcp:scormType="sco" href="index.html">
      <file href="index.html"/>
      <file href="app.js"/>
      <dependency identifierref="RES-SHARED"/>
    </resource>
    <resource identifier="RES-SHARED" type="webcontent" adlcp:scormType="asset" href="style.css">
      <file href="style.css"/>
    </resource>
  </resources>
</manifest>
"""

INDEX_HTML = b"<html><body>Lesson</body></html>"


def build_zip(files: Dict[str, Union[str, bytes]]) -> bytes:
    """Build an in-memory zip archive from a name -> content mapping"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def corrupt_entry(data: bytes, name: str) -> bytes:
    """Flip the first compressed bytes of one member, leaving the zip directory intact"""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        offset = zf.getinfo(name).header_offset
    name_length = int.from_bytes(data[offset + 26:offset + 28], "little")
    extra_length = int.from_bytes(data[offset + 28:offset + 30], "little")
    start = offset + 30 + name_length + extra_length

    corrupted = bytearray(data)
    for i in range(start, start + 3):
        corrupted[i] ^= 0xFF
    return bytes(corrupted)


def deep_manifest(depth: int, innermost: str = "") -> str:
    """Manifest whose single organization nests ``depth`` items"""
    opening = "".join(f'<item identifier="I{i}">' for i in range(depth))
    return (
        '<manifest identifier="M" version="1">'
        '<organizations default="O"><organization identifier="O">'
        f'{opening}{innermost}{"</item>" * depth}'
        '</organization></organizations>'
        '<resources><resource identifier="R" type="webcontent" href="index.html">'
        '<file href="index.html"/></resource></resources>'
        '</manifest>'
    )


def build_package(manifest: Optional[str], **files: Union[str, bytes]) -> bytes:
    """Build a SCORM package; ``manifest=None`` omits imsmanifest.xml"""
    entries: Dict[str, Union[str, bytes]] = {}
    if manifest is not None:
        entries["imsmanifest.xml"] = manifest
    entries.update(files)
    return build_zip(entries)


@pytest.fixture(scope="session")
def test_client():
    """Create a test client for FastAPI application"""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def scorm12_manifest() -> str:
    return SCORM_12_MANIFEST


@pytest.fixture
def scorm2004_manifest() -> str:
    return SCORM_2004_MANIFEST


@pytest.fixture
def scorm12_package() -> bytes:
    """Minimal SCORM 1.2 package with a single SCO"""
    return build_package(SCORM_12_MANIFEST, **{"index.html": INDEX_HTML})


@pytest.fixture
def scorm2004_package() -> bytes:
    """SCORM 2004 package with nested items, sequencing and a dependency"""
    return build_zip({
        "imsmanifest.xml": SCORM_2004_MANIFEST,
        "index.html": INDEX_HTML,
        "app.js": b"console.log('x');",
        "style.css": b"body{}",
    })


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location"""
    for item in items:
        if "api" in str(item.fspath) or "health" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# Helper functions for tests
def assert_response_success(response, expected_status=200):
    """Assert that response is successful"""
    assert response.status_code == expected_status, f"Expected {expected_status}, got {response.status_code}: {response.text}"


def assert_response_error(response, expected_status=400):
    """Assert that response is an error"""
    assert response.status_code == expected_status, f"Expected error {expected_status}, got {response.status_code}: {response.text}"
    assert response.json()["success"] is False
