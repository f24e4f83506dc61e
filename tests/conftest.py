"""Shared fixtures: minimal .docx packages built from raw XML."""

import zipfile
from pathlib import Path

import pytest
from lxml import etree
from PIL import Image

WORD_NAMESPACE = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
WP_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"


class DocxFactory:
    """Builds small Word documents in a temporary directory."""

    def __init__(self, directory: Path):
        self.directory = directory

    @staticmethod
    def run(text: str, bold: bool = False) -> str:
        rpr = "<w:rPr><w:b/></w:rPr>" if bold else ""
        return f'<w:r>{rpr}<w:t xml:space="preserve">{text}</w:t></w:r>'

    @classmethod
    def paragraph(cls, *runs: str) -> str:
        """Build a w:p from run XML; plain strings become single runs."""
        parts = [r if r.startswith("<") else cls.run(r) for r in runs]
        return f"<w:p>{''.join(parts)}</w:p>"

    @classmethod
    def table(cls, *rows: list[str]) -> str:
        body = ""
        for row in rows:
            cells = "".join(f"<w:tc>{cls.paragraph(text)}</w:tc>" for text in row)
            body += f"<w:tr>{cells}</w:tr>"
        return f"<w:tbl>{body}</w:tbl>"

    def create(
        self,
        name: str = "test.docx",
        body: list[str] | None = None,
        headers: list[str] | None = None,
        footers: list[str] | None = None,
    ) -> Path:
        """Create a .docx whose body, headers and footers hold the given paragraphs.

        Each item in headers/footers is the paragraph XML of one header or footer part.
        """
        headers = headers or []
        footers = footers or []
        docx_path = self.directory / name
        docx_path.parent.mkdir(parents=True, exist_ok=True)

        document_content = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="{WORD_NAMESPACE}" xmlns:r="{REL_NS}">
  <w:body>{''.join(body or [])}<w:sectPr/></w:body>
</w:document>"""

        overrides = [
            '<Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
        ]
        relationships = []
        parts = {}
        rel_index = 1
        for kind, root_tag, items in (("header", "hdr", headers), ("footer", "ftr", footers)):
            for number, content in enumerate(items, start=1):
                part = f"word/{kind}{number}.xml"
                parts[part] = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:{root_tag} xmlns:w="{WORD_NAMESPACE}">{content}</w:{root_tag}>"""
                overrides.append(
                    f'<Override PartName="/{part}" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.{kind}+xml"/>'
                )
                relationships.append(
                    f'<Relationship Id="rId{rel_index}" Type="{REL_NS}/{kind}" Target="{kind}{number}.xml"/>'
                )
                rel_index += 1

        content_types = f"""<?xml version="1.0" encoding="UTF-8"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  {''.join(overrides)}
</Types>"""

        root_rels = f"""<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="{REL_NS}/officeDocument" Target="word/document.xml"/>
</Relationships>"""

        doc_rels = f"""<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  {''.join(relationships)}
</Relationships>"""

        with zipfile.ZipFile(docx_path, "w", zipfile.ZIP_DEFLATED) as docx:
            docx.writestr("[Content_Types].xml", content_types)
            docx.writestr("_rels/.rels", root_rels)
            docx.writestr("word/document.xml", document_content)
            docx.writestr("word/_rels/document.xml.rels", doc_rels)
            for part, xml in parts.items():
                docx.writestr(part, xml)

        return docx_path

    @staticmethod
    def read_part(docx_path: Path, part_name: str = "word/document.xml") -> bytes:
        with zipfile.ZipFile(docx_path) as docx:
            return docx.read(part_name)

    @classmethod
    def part_root(cls, docx_path: Path, part_name: str = "word/document.xml"):
        return etree.fromstring(cls.read_part(docx_path, part_name))

    @classmethod
    def paragraph_texts(cls, docx_path: Path, part_name: str = "word/document.xml") -> list[str]:
        """Visible text of every paragraph of a part, in document order."""
        root = cls.part_root(docx_path, part_name)
        texts = []
        for p in root.iter(f"{{{WORD_NAMESPACE}}}p"):
            texts.append("".join(t.text or "" for t in p.iter(f"{{{WORD_NAMESPACE}}}t")))
        return texts

    @staticmethod
    def names(docx_path: Path) -> list[str]:
        with zipfile.ZipFile(docx_path) as docx:
            return docx.namelist()


@pytest.fixture
def docx(tmp_path) -> DocxFactory:
    """Factory for minimal .docx files in a temporary directory."""
    return DocxFactory(tmp_path)


@pytest.fixture
def png_file(tmp_path) -> Path:
    """A 200x100 PNG image."""
    path = tmp_path / "logo.png"
    Image.new("RGB", (200, 100), color=(200, 30, 30)).save(path)
    return path
