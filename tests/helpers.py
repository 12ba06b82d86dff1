"""
Construcción de plantillas .docx mínimas para los tests

Las plantillas se escriben directamente como XML para controlar ids de
imágenes, relaciones y propiedades; python-docx se usa en los tests que solo
necesitan párrafos, runs, tablas o secciones.
"""

import base64
import zipfile
from pathlib import Path
from typing import Dict, Optional
from xml.sax.saxutils import escape

from lxml import etree

W_NS = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'

NAMESPACES = (
    'xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
    'xmlns:wp="http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing" '
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:pic="http://schemas.openxmlformats.org/drawingml/2006/picture"'
)

PNG_1X1 = base64.b64decode(
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='
)

SECT_PR = '<w:sectPr><w:pgSz w:w="11906" w:h="16838"/></w:sectPr>'

_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Default Extension="png" ContentType="image/png"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '{overrides}'
    '</Types>'
)

_HEADER_OVERRIDE = (
    '<Override PartName="/word/header1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.header+xml"/>'
)
_CORE_OVERRIDE = (
    '<Override PartName="/docProps/core.xml" '
    'ContentType="application/vnd.openxmlformats-package.core-properties+xml"/>'
)
_APP_OVERRIDE = (
    '<Override PartName="/docProps/app.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.extended-properties+xml"/>'
)

_PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    '</Relationships>'
)

CORE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<cp:coreProperties '
    'xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" '
    'xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:dcterms="http://purl.org/dc/terms/" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
    '<dc:title>Plantilla</dc:title>'
    '<dc:creator>Origen</dc:creator>'
    '<cp:lastModifiedBy>Origen</cp:lastModifiedBy>'
    '<cp:revision>7</cp:revision>'
    '<cp:lastPrinted>2020-01-01T00:00:00Z</cp:lastPrinted>'
    '<dcterms:created xsi:type="dcterms:W3CDTF">2020-01-01T00:00:00Z</dcterms:created>'
    '<dcterms:modified xsi:type="dcterms:W3CDTF">2020-01-02T00:00:00Z</dcterms:modified>'
    '</cp:coreProperties>'
)

APP_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties">'
    '<TotalTime>42</TotalTime>'
    '<Company>Antigua S.A.</Company>'
    '</Properties>'
)


def run(text: str) -> str:
    return f'<w:r><w:t xml:space="preserve">{escape(text)}</w:t></w:r>'


def paragraph(*texts: str) -> str:
    """Párrafo con un run por cada texto (permite partir variables)."""
    return '<w:p>' + ''.join(run(text) for text in texts) + '</w:p>'


def table_row(*cells: str) -> str:
    return '<w:tr>' + ''.join(f'<w:tc>{paragraph(cell)}</w:tc>' for cell in cells) + '</w:tr>'


def table(*rows: str) -> str:
    return '<w:tbl>' + ''.join(rows) + '</w:tbl>'


def drawing(image_id: int, rel_id: str) -> str:
    """Run con una imagen en línea: id de autor en wp:docPr y relación en a:blip."""
    return (
        '<w:r><w:drawing><wp:inline>'
        f'<wp:docPr id="{image_id}" name="Picture {image_id}"/>'
        '<a:graphic><a:graphicData uri="http://schemas.openxmlformats.org/drawingml/2006/picture">'
        f'<pic:pic><pic:blipFill><a:blip r:embed="{rel_id}"/></pic:blipFill></pic:pic>'
        '</a:graphicData></a:graphic>'
        '</wp:inline></w:drawing></w:r>'
    )


def relationships(*entries: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
        + ''.join(entries) +
        '</Relationships>'
    )


def image_relationship(rel_id: str, target: str) -> str:
    return (
        f'<Relationship Id="{rel_id}" '
        'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/image" '
        f'Target="{target}"/>'
    )


def hyperlink_relationship(rel_id: str, target: str) -> str:
    return (
        f'<Relationship Id="{rel_id}" '
        'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink" '
        f'Target="{escape(target)}" TargetMode="External"/>'
    )


def document_xml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document {NAMESPACES}><w:body>{body}</w:body></w:document>'
    )


def header_xml(content: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:hdr {NAMESPACES}>{content}</w:hdr>'
    )


def build_docx(path: Path, body: str, header: Optional[str] = None,
               document_rels: Optional[str] = None, header_rels: Optional[str] = None,
               media: Optional[Dict[str, bytes]] = None,
               core: bool = True, app: bool = True) -> Path:
    """
    Escribe una plantilla .docx.

    Args:
        path: Ruta del archivo a crear
        body: Contenido de w:body (incluido el w:sectPr final)
        header: Contenido de word/header1.xml (opcional)
        document_rels: XML de word/_rels/document.xml.rels (opcional)
        header_rels: XML de word/_rels/header1.xml.rels (opcional)
        media: Nombre -> bytes de archivos en word/media/
        core: Incluir docProps/core.xml
        app: Incluir docProps/app.xml

    Returns:
        La ruta escrita
    """
    overrides = ''
    if header is not None:
        overrides += _HEADER_OVERRIDE
    if core:
        overrides += _CORE_OVERRIDE
    if app:
        overrides += _APP_OVERRIDE

    path = Path(path)
    with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as docx:
        docx.writestr('[Content_Types].xml', _CONTENT_TYPES.format(overrides=overrides))
        docx.writestr('_rels/.rels', _PACKAGE_RELS)
        docx.writestr('word/document.xml', document_xml(body))
        docx.writestr('word/_rels/document.xml.rels', document_rels or relationships())
        if header is not None:
            docx.writestr('word/header1.xml', header_xml(header))
            docx.writestr('word/_rels/header1.xml.rels', header_rels or relationships())
        if core:
            docx.writestr('docProps/core.xml', CORE_XML)
        if app:
            docx.writestr('docProps/app.xml', APP_XML)
        for name, data in (media or {}).items():
            docx.writestr(f'word/media/{name}', data)

    return path


def read_part(docx_path: Path, name: str) -> etree._Element:
    with zipfile.ZipFile(docx_path) as docx:
        return etree.fromstring(docx.read(name))


def zip_names(docx_path: Path):
    with zipfile.ZipFile(docx_path) as docx:
        return docx.namelist()


def paragraph_texts(root: etree._Element):
    """Texto de cada w:p de un árbol, en orden de documento."""
    return [
        ''.join(t.text or '' for t in p.iter(f'{{{W_NS}}}t'))
        for p in root.iter(f'{{{W_NS}}}p')
    ]
