"""
CSS Inliner - Estilos en línea para HTML de correo electrónico

Muchos clientes de correo ignoran las hojas de estilo. Este módulo copia las
reglas de los bloques <style> al atributo `style` de cada elemento.

No es un motor CSS completo: solo entiende selectores de un nivel
(`*`, `p`, `.clase`, `#id`, `table.clase`, `p#id`). No hay selectores
anidados, combinadores ni media queries.
"""

import re
from typing import Dict, List, Tuple

from lxml import etree, html

from template_engine.utils import setup_logger

logger = setup_logger(__name__)

DOCTYPE = '<!DOCTYPE HTML>'

_COMMENTS_AND_AT_RULES = re.compile(r'/\*.*?\*/|@[^{}]*\{.*?\}', re.S)
_RULE = re.compile(r'([\w.#,\s\-*]+)\s*\{(.+?)\}', re.S)
_SELECTOR = re.compile(r'^(?:\*|[A-Za-z][\w-]*|(?:[A-Za-z][\w-]*)?[.#][\w-]+)$')

Rule = Tuple[str, str]


def parse_style_rules(css: str) -> List[Rule]:
    """
    Extrae pares (selector, declaraciones) de un bloque de estilos.

    Args:
        css: Contenido de un bloque <style>

    Returns:
        Reglas aceptadas en orden de aparición
    """
    css = _COMMENTS_AND_AT_RULES.sub('', css or '')
    rules = []

    for selectors, declarations in _RULE.findall(css):
        declarations = declarations.strip()
        if not declarations:
            continue

        for selector in (s.strip() for s in selectors.split(',')):
            if not selector or selector.endswith('.'):
                continue
            if not _SELECTOR.match(selector):
                logger.debug(f"Selector no soportado: '{selector}'")
                continue
            rules.append((selector, declarations))

    return rules


class _ElementIndex:
    """Índices por tag, clase e id de los elementos fuera de <head>."""

    def __init__(self, root: etree._Element):
        self.tags: Dict[str, List[etree._Element]] = {}
        self.classes: Dict[str, List[etree._Element]] = {}
        self.ids: Dict[str, etree._Element] = {}

        for element in root.iter():
            if not isinstance(element.tag, str):
                continue
            if self._inside_head(element):
                continue

            self.tags.setdefault(element.tag.lower(), []).append(element)

            for class_name in (element.get('class') or '').split():
                self.classes.setdefault(class_name, []).append(element)

            element_id = element.get('id')
            if element_id:
                self.ids[element_id] = element

    @staticmethod
    def _inside_head(element: etree._Element) -> bool:
        node = element
        while node is not None:
            if isinstance(node.tag, str) and node.tag.lower() == 'head':
                return True
            node = node.getparent()
        return False

    def all_elements(self) -> List[etree._Element]:
        return [element for elements in self.tags.values() for element in elements]


def _prepend_style(element: etree._Element, declarations: str):
    element.set('style', f"{declarations};{element.get('style') or ''}")


def _tag_matches(tag: str, element: etree._Element) -> bool:
    return not tag or tag.lower() == element.tag.lower()


def apply_rules(root: etree._Element, rules: List[Rule]):
    """
    Aplica las reglas sobre un árbol HTML.

    Las reglas se recorren en orden inverso y cada bloque se antepone al
    atributo style existente.
    """
    index = _ElementIndex(root)

    for selector, declarations in reversed(rules):
        if '.' in selector:
            tag, class_name = selector.split('.', 1)
            for element in index.classes.get(class_name, []):
                if _tag_matches(tag, element):
                    _prepend_style(element, declarations)
        elif '#' in selector:
            tag, element_id = selector.split('#', 1)
            element = index.ids.get(element_id)
            if element is not None and _tag_matches(tag, element):
                _prepend_style(element, declarations)
        elif selector == '*':
            for element in index.all_elements():
                _prepend_style(element, declarations)
        else:
            for element in index.tags.get(selector.lower(), []):
                _prepend_style(element, declarations)


def inline_css(contents: str) -> str:
    """
    Pasa a línea los estilos de un documento HTML.

    Args:
        contents: Documento HTML

    Returns:
        Documento HTML con estilos en línea y DOCTYPE fijo
    """
    root = html.document_fromstring(contents)

    rules = []
    for style in root.iter('style'):
        rules.extend(parse_style_rules(style.text or ''))

    apply_rules(root, rules)

    body = root.find('body')
    if body is not None:
        body.set('style', f"{body.get('style') or ''}; margin: 0;")

    logger.debug(f"CSS en línea: {len(rules)} reglas aplicadas")

    return f"{DOCTYPE}\n" + html.tostring(root, encoding='unicode', method='html')
