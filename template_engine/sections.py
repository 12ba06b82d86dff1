"""
Sections - Detección, truncado y duplicado de secciones del documento

Una sección termina en un elemento w:sectPr. La última vive directamente en el
body; las anteriores dentro de las propiedades (w:pPr) del último párrafo de
la sección. La "raíz" de un marcador es el propio marcador en el primer caso y
el párrafo que lo contiene en el segundo.

El índice de sección de cada raíz se guarda en una tabla auxiliar en memoria,
nunca como atributo del XML, para que no llegue al documento guardado.
"""

from copy import deepcopy
from typing import Dict, List, Optional

from lxml import etree

from template_engine.document_model import DocumentModel, node_text, w
from template_engine.errors import SectionNotFound
from template_engine.utils import setup_logger

logger = setup_logger(__name__)


class SectionManager:
    """Operaciones de sección sobre el cuerpo del documento principal."""

    def __init__(self, model: DocumentModel):
        self.model = model
        self._roots: Dict[etree._Element, int] = {}

    # ==========================================================================
    # MARCADO
    # ==========================================================================

    def markers(self) -> List[etree._Element]:
        """Marcadores de sección (w:sectPr) del body, en orden de documento."""
        body = self.model.body
        result = []

        for marker in body.iter(w('sectPr')):
            root = self.section_root(marker)
            if root is not None and root.getparent() is body:
                result.append(marker)

        return result

    def section_root(self, marker: etree._Element) -> Optional[etree._Element]:
        parent = marker.getparent()
        if parent is None:
            return None
        if parent.tag == w('body'):
            return marker
        return parent.getparent()

    def mark_sections(self) -> List[etree._Element]:
        """
        Asigna a la raíz de cada marcador su índice (base 1).

        Returns:
            Lista de marcadores en orden de documento
        """
        self._roots = {}
        sections = self.markers()

        for number, marker in enumerate(sections, start=1):
            self._roots[self.section_root(marker)] = number

        return sections

    def section_of(self, element: etree._Element) -> Optional[int]:
        """Índice asignado por `mark_sections` a una raíz, o None."""
        return self._roots.get(element)

    def section_count(self) -> int:
        return len(self.markers())

    def _validate(self, idx: int, sections: List[etree._Element]):
        if not 1 <= idx <= len(sections):
            raise SectionNotFound(idx)

    # ==========================================================================
    # TRUNCADO
    # ==========================================================================

    def use_section(self, idx: int):
        """
        Elimina todas las secciones excepto la indicada.

        Debe llamarse antes de cualquier reemplazo: los índices de párrafos y
        filas no se recalculan.

        Args:
            idx: Índice de la sección (base 1)
        """
        sections = self.mark_sections()
        self._validate(idx, sections)

        body = self.model.body
        working = idx
        removed = 0

        # Un nodo pertenece a la sección del primer marcador en o tras él
        for element in reversed(list(body)):
            tagged = self._roots.get(element)
            if tagged:
                working = tagged

            if working != idx:
                body.remove(element)
                removed += 1

        self._roots = {}

        survivor = self.markers()[0]
        if survivor.getparent() is not body:
            paragraph = self.section_root(survivor)
            body.append(survivor)
            if self._is_empty_paragraph(paragraph):
                body.remove(paragraph)

        logger.info(f"Documento truncado a la sección {idx} ({removed} nodos eliminados)")

    def _is_empty_paragraph(self, paragraph: etree._Element) -> bool:
        if node_text(paragraph).strip():
            return False
        for tag in ('drawing', 'pict', 'object'):
            if paragraph.find(f'.//{w(tag)}') is not None:
                return False
        return True

    # ==========================================================================
    # DUPLICADO
    # ==========================================================================

    def repeat(self, count: int = 1, idx: Optional[int] = None):
        """
        Duplica el documento completo o una sola sección al final del documento.

        Args:
            count: Número de copias
            idx: Sección a duplicar (opcional, por defecto todo el documento)
        """
        if count < 1:
            return

        body = self.model.body

        if idx is None:
            template = [deepcopy(node) for node in body]
        else:
            template = self._section_template(idx)

        if not len(body):
            return

        for _ in range(count):
            separator = body[-1]
            body.remove(separator)

            self._append_separator_paragraph(body, separator)

            for node in template:
                body.append(deepcopy(node))

            if idx is not None:
                # El último marcador cierra la nueva sección final
                body.append(self.markers()[-1])

        self._roots = {}

        scope = 'documento' if idx is None else f'sección {idx}'
        logger.info(f"Repetido {scope} x{count}")

    def _section_template(self, idx: int) -> List[etree._Element]:
        """Copias de los nodos de una sección, incluida su raíz."""
        sections = self.mark_sections()
        self._validate(idx, sections)

        body = self.model.body
        if idx == 1:
            node = body[0] if len(body) else None
        else:
            node = self.section_root(sections[idx - 2]).getnext()

        template = []
        while node is not None:
            template.append(deepcopy(node))
            if self._roots.get(node):
                break
            node = node.getnext()

        return template

    def _append_separator_paragraph(self, body: etree._Element, separator: etree._Element):
        """
        Añade un párrafo que contiene el marcador que cerraba el documento.

        Las propiedades del nuevo párrafo copian los atributos del último
        w:pPr del documento.
        """
        properties = list(body.iter(w('pPr')))

        paragraph_attrib = {}
        properties_attrib = {}
        if properties:
            last = properties[-1]
            properties_attrib = dict(last.attrib)
            if last.getparent() is not None:
                paragraph_attrib = dict(last.getparent().attrib)

        paragraph = etree.SubElement(body, w('p'), attrib=paragraph_attrib)
        paragraph_properties = etree.SubElement(paragraph, w('pPr'), attrib=properties_attrib)
        paragraph_properties.append(separator)
