"""
Content extraction tests
"""

import pytest

from scorm_processor.services.content_extractor import (
    DEFAULT_MIME_TYPE,
    extract_content,
    get_mime_type,
)
from scorm_processor.services.exceptions import ArchiveError, XmlError

from conftest import (
    INDEX_HTML,
    SCORM_12_MANIFEST,
    build_package,
    build_zip,
    corrupt_entry,
    deep_manifest,
)


class TestMimeTypes:
    @pytest.mark.parametrize("filename,expected", [
        ("index.html", "text/html"),
        ("page.HTM", "text/html"),
        ("scripts/api.js", "application/javascript"),
        ("styles/main.css", "text/css"),
        ("img/logo.PNG", "image/png"),
        ("img/photo.jpeg", "image/jpeg"),
        ("media/intro.mp4", "video/mp4"),
        ("docs/guide.pdf", "application/pdf"),
    ])
    def test_known_extensions(self, filename, expected):
        assert get_mime_type(filename) == expected

    def test_unknown_extension_defaults(self):
        assert get_mime_type("data.bin") == DEFAULT_MIME_TYPE
        assert get_mime_type("README") == DEFAULT_MIME_TYPE


class TestExtractContent:
    """Organizations, resources and files from a package"""

    def test_scorm12_package(self, scorm12_package):
        content = extract_content(scorm12_package)

        assert content.manifest.startswith("<?xml")
        assert len(content.organizations) == 1
        organization = content.organizations[0]
        assert organization.identifier == "ORG-1"
        assert organization.title == "Basic Course"

        item = organization.items[0]
        assert item.identifier == "ITEM-1"
        assert item.identifierref == "RES-1"
        assert item.title == "Lesson 1"
        assert item.masteryScore == 80.0

        resource = content.resources[0]
        assert resource.identifier == "RES-1"
        assert resource.type == "webcontent"
        assert resource.scormType == "sco"
        assert resource.href == "index.html"
        assert [f.href for f in resource.files] == ["index.html"]
        assert resource.files[0].content == INDEX_HTML
        assert resource.files[0].mimeType == "text/html"
        assert content.total_size == len(INDEX_HTML)

    def test_scorm2004_package(self, scorm2004_package):
        content = extract_content(scorm2004_package)

        organization = content.organizations[0]
        assert organization.sequencing is not None
        assert organization.sequencing.controlMode.choice is True

        module = organization.items[0]
        assert [child.identifier for child in module.children] == ["ITEM-1-1"]
        assert module.isVisible is True
        assert module.children[0].isVisible is False
        assert module.children[0].title == "Hidden Lesson"

        sco, shared = content.resources
        assert sco.scormType == "sco"
        assert sco.dependencies == ["RES-SHARED"]
        assert [f.mimeType for f in sco.files] == ["text/html", "application/javascript"]
        assert shared.scormType == "asset"
        assert content.metadata.schemaVersion == "2004 4th Edition"

    def test_missing_file_is_skipped(self):
        manifest = SCORM_12_MANIFEST.replace(
            '<file href="index.html"/>',
            '<file href="index.html"/><file href="missing.js"/>',
        )

        content = extract_content(build_package(manifest, **{"index.html": INDEX_HTML}))

        assert [f.href for f in content.resources[0].files] == ["index.html"]

    def test_title_falls_back_to_identifier(self):
        manifest = (
            "<manifest identifier='M' version='1'>"
            "<organizations default='O'><organization identifier='O'>"
            "<item identifier='I'/></organization></organizations>"
            "<resources/></manifest>"
        )

        content = extract_content(build_package(manifest))

        assert content.organizations[0].title == "O"
        assert content.organizations[0].items[0].title == "I"

    def test_scorm12_item_data(self):
        manifest = (
            "<manifest identifier='M' version='1' xmlns:adlcp='http://www.adlnet.org/xsd/adlcp_rootv1p2'>"
            "<organizations default='O'><organization identifier='O'>"
            "<item identifier='I' adlcp:prerequisites='I0'>"
            "<adlcp:maxtimeallowed>00:30:00</adlcp:maxtimeallowed>"
            "<adlcp:timelimitaction>exit,message</adlcp:timelimitaction>"
            "<adlcp:datafromlms>mode=review</adlcp:datafromlms>"
            "</item></organization></organizations>"
            "<resources/></manifest>"
        )

        item = extract_content(build_package(manifest)).organizations[0].items[0]

        assert item.prerequisites == "I0"
        assert item.maxTimeAllowed == "00:30:00"
        assert item.timeLimitAction == "exit,message"
        assert item.dataFromLms == "mode=review"

    def test_empty_sections(self):
        content = extract_content(build_package("<manifest identifier='M' version='1'/>"))

        assert content.organizations == []
        assert content.resources == []
        assert content.total_size == 0

    def test_missing_manifest_raises(self):
        with pytest.raises(ArchiveError) as exc_info:
            extract_content(build_zip({"index.html": INDEX_HTML}))
        assert str(exc_info.value).startswith("Failed to extract SCORM content:")

    def test_malformed_manifest_raises(self):
        with pytest.raises(XmlError) as exc_info:
            extract_content(build_package("<manifest><organizations>"))
        assert "Invalid XML format" in str(exc_info.value)

    def test_not_a_zip_raises(self):
        with pytest.raises(ArchiveError):
            extract_content(b"plain bytes")


class TestExtractContentHostileInput:
    """Deep trees, corrupt members and compression bombs"""

    def test_deeply_nested_items(self):
        content = extract_content(build_package(deep_manifest(1500), **{"index.html": INDEX_HTML}))

        item, depth = content.organizations[0].items[0], 1
        while item.children:
            assert len(item.children) == 1
            item = item.children[0]
            depth += 1
        assert depth == 1500
        assert item.identifier == "I1499"

    def test_sibling_order_is_preserved(self):
        manifest = (
            "<manifest identifier='M' version='1'>"
            "<organizations default='O'><organization identifier='O'>"
            "<item identifier='A'><item identifier='A1'/><item identifier='A2'/></item>"
            "<item identifier='B'/>"
            "</organization></organizations><resources/></manifest>"
        )

        items = extract_content(build_package(manifest)).organizations[0].items

        assert [i.identifier for i in items] == ["A", "B"]
        assert [i.identifier for i in items[0].children] == ["A1", "A2"]

    def test_corrupt_asset_is_skipped(self):
        manifest = SCORM_12_MANIFEST.replace(
            '<file href="index.html"/>',
            '<file href="index.html"/><file href="app.js"/>',
        )
        package = corrupt_entry(
            build_package(manifest, **{"index.html": INDEX_HTML, "app.js": b"var lesson = 1;\n" * 100}),
            "app.js",
        )

        content = extract_content(package)

        assert [f.href for f in content.resources[0].files] == ["index.html"]

    def test_compression_bomb_asset_is_skipped(self):
        manifest = SCORM_12_MANIFEST.replace(
            '<file href="index.html"/>',
            '<file href="index.html"/><file href="video.mp4"/>',
        )
        package = build_package(manifest, **{"index.html": INDEX_HTML, "video.mp4": b"\0" * (4 * 1024 * 1024)})

        content = extract_content(package)

        assert content.total_size == len(INDEX_HTML)

    def test_package_expanding_past_limit_raises(self, monkeypatch):
        monkeypatch.setattr("scorm_processor.services.archive.MAX_UNCOMPRESSED_SIZE", 1024)
        package = build_package(SCORM_12_MANIFEST, **{"index.html": b"x" * 4096})

        with pytest.raises(ArchiveError, match="exceeding the limit"):
            extract_content(package)
