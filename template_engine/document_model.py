"""
Document Model - Árboles XML de las partes del documento

Cada parte (cuerpo, cabeceras, pies, relaciones, metadatos) es un árbol lxml
propio. Las referencias entre partes (ids de relación, blips de imágenes) se
resuelven siempre por clave, nunca guardando nodos de otra parte.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from lxml import etree

from template_engine.errors import PackageUnreadable
from template_engine.package import DocumentPackage
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

# Namespaces
W_NS = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'
R_NS = 'http://schemas.openxmlformats.org/officeDocument/2006/relationships'
WP_NS = 'http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing'
A_NS = 'http://schemas.openxmlformats.org/drawingml/2006/main'
PKG_REL_NS = 'http://schemas.openxmlformats.org/package/2006/relationships'
XML_NS = 'http://www.w3.org/XML/1998/namespace'

ROLE_MAIN = 'main'
ROLE_HEADER = 'header'
ROLE_FOOTER = 'footer'
ROLE_CORE_PROPERTIES = 'core-properties'
ROLE_EXTENDED_PROPERTIES = 'extended-properties'
ROLE_RELATIONSHIPS = 'relationships'


def w(tag: str) -> str:
    """Nombre calificado en el namespace principal de WordprocessingML."""
    return f'{{{W_NS}}}{tag}'


def make_parser() -> etree.XMLParser:
    return etree.XMLParser(remove_blank_text=False, strip_cdata=False)


def get_elements(parent: etree._Element, tag: str) -> List[etree._Element]:
    """
    Descendientes con un tag dado, en orden de documento.

    No desciende dentro de un elemento que ya coincide ('*' lo recorre todo).

    Args:
        parent: Nodo desde el que buscar
        tag: Tag calificado o '*'

    Returns:
        Lista de elementos
    """
    elements = []

    for child in parent:
        if not isinstance(child.tag, str):
            continue

        matches = tag == '*' or child.tag == tag
        if matches:
            elements.append(child)

        if len(child) and (tag == '*' or not matches):
            elements.extend(get_elements(child, tag))

    return elements


def text_leaves(node: etree._Element) -> List[etree._Element]:
    """Hojas de texto (w:t) de un nodo en orden de documento."""
    return get_elements(node, w('t'))


def node_text(node: etree._Element) -> str:
    """Texto agregado de las hojas w:t de un nodo."""
    if node.tag == w('t'):
        return node.text or ''
    return ''.join(leaf.text or '' for leaf in text_leaves(node))


def set_text(leaf: etree._Element, new_text: Optional[str]):
    """Actualiza el texto de una hoja garantizando xml:space cuando sea necesario."""
    if new_text is None:
        new_text = ''

    leaf.text = new_text

    needs_preserve = (
        new_text.startswith(' ') or
        new_text.endswith(' ') or
        '\n' in new_text or
        '\t' in new_text
    )

    if needs_preserve:
        leaf.set(f'{{{XML_NS}}}space', 'preserve')
    elif f'{{{XML_NS}}}space' in leaf.attrib:
        del leaf.attrib[f'{{{XML_NS}}}space']


class Part:
    """Una parte XML del paquete con su rol y su ruta en disco."""

    def __init__(self, role: str, path: Path, tree: etree._ElementTree):
        self.role = role
        self.path = Path(path)
        self.tree = tree

    @classmethod
    def load(cls, role: str, path: Path) -> 'Part':
        try:
            tree = etree.parse(str(path), make_parser())
        except (OSError, etree.XMLSyntaxError) as e:
            raise PackageUnreadable(f"Unable to process part '{Path(path).name}'.") from e
        return cls(role, path, tree)

    @property
    def root(self) -> etree._Element:
        return self.tree.getroot()

    @property
    def name(self) -> str:
        """Nombre base de la parte ('document.xml', 'header1.xml'...)."""
        return self.path.name

    @property
    def directory(self) -> Path:
        return self.path.parent

    def save(self):
        self.tree.write(
            str(self.path),
            encoding='UTF-8',
            xml_declaration=True,
            standalone=True,
        )

    def __repr__(self):
        return f"Part({self.role!r}, {self.name!r})"


class DocumentModel:
    """
    Conjunto de partes de un documento cargado.

    Las cabeceras y los pies se mantienen en el orden del manifiesto; las
    partes de relaciones se indexan por el nombre base de la parte dueña.
    """

    def __init__(self, main: Part, headers: Optional[List[Part]] = None,
                 footers: Optional[List[Part]] = None,
                 core_properties: Optional[Part] = None,
                 extended_properties: Optional[Part] = None,
                 relationships: Optional[Dict[str, Part]] = None):
        self.main = main
        self.headers = headers or []
        self.footers = footers or []
        self.core_properties = core_properties
        self.extended_properties = extended_properties
        self.relationships = relationships or {}

    @classmethod
    def from_package(cls, package: DocumentPackage) -> 'DocumentModel':
        """
        Carga todas las partes relevantes de un paquete extraído.

        Args:
            package: Paquete extraído

        Returns:
            DocumentModel con todas las partes parseadas
        """
        main = None
        headers = []
        footers = []
        core_properties = None
        extended_properties = None

        for entry in package.parts:
            role = entry.role

            if role == ROLE_MAIN:
                main = Part.load(role, entry.path)
            elif role == ROLE_HEADER:
                headers.append(Part.load(role, entry.path))
            elif role == ROLE_FOOTER:
                footers.append(Part.load(role, entry.path))
            elif role == ROLE_CORE_PROPERTIES:
                core_properties = Part.load(role, entry.path)
            elif role == ROLE_EXTENDED_PROPERTIES:
                extended_properties = Part.load(role, entry.path)

        if main is None:
            raise PackageUnreadable(
                f"Unable to process template '{package.template_path.name}'."
            )

        relationships = {}
        for part in [main] + headers + footers:
            rels_path = package.relationships_path_for(part.path)
            if rels_path is not None and rels_path.exists():
                relationships[part.name] = Part.load(ROLE_RELATIONSHIPS, rels_path)

        logger.info(
            f"Modelo cargado: {len(headers)} cabeceras, {len(footers)} pies, "
            f"{len(relationships)} partes de relaciones"
        )

        return cls(main, headers, footers, core_properties, extended_properties, relationships)

    @property
    def body(self) -> etree._Element:
        body = self.main.root.find(w('body'))
        if body is None:
            raise PackageUnreadable("The main document has no body.")
        return body

    def content_parts(self) -> List[Part]:
        """Cuerpo principal, cabeceras y pies (las partes con contenido)."""
        return [self.main] + self.headers + self.footers

    def story_roots(self) -> Iterator[Tuple[Part, etree._Element]]:
        """Contenedores de primer nivel: el body del documento y la raíz de cada cabecera/pie."""
        yield self.main, self.body
        for part in self.headers + self.footers:
            yield part, part.root

    def all_parts(self) -> List[Part]:
        parts = self.content_parts()
        parts.extend(p for p in (self.core_properties, self.extended_properties) if p is not None)
        parts.extend(self.relationships.values())
        return parts

    def save(self):
        """Escribe todos los árboles en sus archivos de origen."""
        for part in self.all_parts():
            part.save()
        logger.debug(f"Guardadas {len(self.all_parts())} partes XML")
