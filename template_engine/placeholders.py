"""
Placeholders - Sintaxis de variables e índice perezoso de contenedores

Una variable tiene la forma <ancla><apertura>nombre<cierre>: ${nombre} con la
sintaxis por defecto o ~(nombre) con la alternativa. Los nombres se comparan
sin distinguir mayúsculas.
"""

import re
from typing import Dict, List, Sequence

from lxml import etree

from template_engine.document_model import DocumentModel, get_elements, node_text, w
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

# Cualquier variable en cualquiera de las dos sintaxis
VARIABLE_PATTERN = re.compile(r'[~$][{(](.+?)[)}]')
TOKEN_OPENERS = ('${', '~(')

MODE_PARAGRAPHS = 1
MODE_ROWS = 2


class VariableSyntax:
    """Puntuación de una variable: ancla, apertura y cierre."""

    def __init__(self, anchor: str, open_char: str, close_char: str):
        self.anchor = anchor
        self.open_char = open_char
        self.close_char = close_char

    def token(self, name: str) -> str:
        return f'{self.anchor}{self.open_char}{name}{self.close_char}'

    def __eq__(self, other):
        return (
            isinstance(other, VariableSyntax) and
            (self.anchor, self.open_char, self.close_char) ==
            (other.anchor, other.open_char, other.close_char)
        )

    def __repr__(self):
        return f"VariableSyntax({self.token('name')!r})"


DEFAULT_SYNTAX = VariableSyntax('$', '{', '}')
ALTERNATIVE_SYNTAX = VariableSyntax('~', '(', ')')


def token_pattern(token: str) -> 're.Pattern':
    """Patrón literal, insensible a mayúsculas, para un token completo."""
    return re.compile(re.escape(token), re.IGNORECASE)


def find_variable_names(text: str) -> List[str]:
    """Nombres (en minúsculas) de todas las variables de un texto."""
    return [name.lower() for name in VARIABLE_PATTERN.findall(text or '')]


def has_token_opener(text: str) -> bool:
    return any(opener in text for opener in TOKEN_OPENERS)


# ==============================================================================
# ÍNDICE DE PÁRRAFOS Y FILAS
# ==============================================================================

class PlaceholderIndex:
    """
    Caché nombre -> contenedores, construida una vez por modo.

    Modo párrafos: cada párrafo que contiene la variable.
    Modo filas: la fila de tabla (w:tr) que contiene el párrafo.

    La caché no se refresca tras mutaciones del árbol. La única invalidación
    es `invalidate_rows`, que usa la clonación de filas; el resto de
    operaciones estructurales deben hacerse antes de la primera consulta.
    """

    def __init__(self, model: DocumentModel):
        self.model = model
        self._entries: Dict[int, Dict[str, List[etree._Element]]] = {}

    def is_built(self, mode: int) -> bool:
        return mode in self._entries

    def lookup_paragraphs(self, name: str) -> List[etree._Element]:
        return list(self._get(MODE_PARAGRAPHS).get(name.lower(), []))

    def lookup_rows(self, name: str) -> List[etree._Element]:
        return list(self._get(MODE_ROWS).get(name.lower(), []))

    def names(self, mode: int = MODE_PARAGRAPHS) -> List[str]:
        return list(self._get(mode).keys())

    def invalidate_rows(self, name: str):
        """Elimina la entrada de filas de una variable cuyas filas ya no existen."""
        rows = self._entries.get(MODE_ROWS)
        if rows is not None:
            rows.pop(name.lower(), None)

    def _get(self, mode: int) -> Dict[str, List[etree._Element]]:
        if mode not in self._entries:
            self._entries[mode] = self._build(mode)
        return self._entries[mode]

    def _build(self, mode: int) -> Dict[str, List[etree._Element]]:
        """Recorre una sola vez todas las partes con contenido."""
        result: Dict[str, List[etree._Element]] = {}
        paragraph_tag = w('p')
        row_tag = w('tr')

        for part, container in self.model.story_roots():
            for element in container:
                if not isinstance(element.tag, str):
                    continue
                if not has_token_opener(node_text(element)):
                    continue

                if element.tag == paragraph_tag:
                    paragraphs = [element]
                else:
                    paragraphs = get_elements(element, paragraph_tag)

                for paragraph in paragraphs:
                    target = paragraph
                    if mode == MODE_ROWS:
                        cell = paragraph.getparent()
                        row = cell.getparent() if cell is not None else None
                        if row is None or row.tag != row_tag:
                            continue
                        target = row

                    for name in find_variable_names(node_text(paragraph)):
                        entries = result.setdefault(name, [])
                        if not any(existing is target for existing in entries):
                            entries.append(target)

        label = 'párrafos' if mode == MODE_PARAGRAPHS else 'filas'
        logger.debug(f"Índice de {label} construido: {len(result)} variables")
        return result


# ==============================================================================
# ESCÁNER DE SUFIJOS PARA FILAS CLONADAS
# ==============================================================================

class RowSuffixScanner:
    """
    Autómata de tres estados que localiza los cierres de variable.

    Estados: reposo, ancla vista, apertura abierta. Trabaja sobre una
    secuencia abstracta de fragmentos de texto (una variable puede estar
    repartida entre varios) y devuelve, por fragmento, las posiciones donde
    insertar el sufijo: justo antes de cada carácter de cierre. No analiza el
    nombre, así que renombra todas las variables a la vez.
    """

    IDLE = 'idle'
    ANCHOR_SEEN = 'anchor-seen'
    BRACKET_OPEN = 'bracket-open'

    def __init__(self, syntax: VariableSyntax):
        self.syntax = syntax

    def scan(self, spans: Sequence[str]) -> List[List[int]]:
        """
        Args:
            spans: Textos de las hojas en orden de documento

        Returns:
            Para cada fragmento, la lista de offsets de inserción
        """
        state = self.IDLE
        positions: List[List[int]] = []

        for text in spans:
            span_positions = []

            for offset, char in enumerate(text or ''):
                if char == self.syntax.anchor:
                    state = self.ANCHOR_SEEN
                elif char == self.syntax.open_char:
                    if state == self.ANCHOR_SEEN:
                        state = self.BRACKET_OPEN
                elif char == self.syntax.close_char:
                    if state == self.BRACKET_OPEN:
                        span_positions.append(offset)
                    state = self.IDLE

            positions.append(span_positions)

        return positions

    def rename(self, spans: Sequence[str], suffix: str) -> List[str]:
        """Devuelve los fragmentos con `suffix` insertado antes de cada cierre."""
        renamed = []

        for text, span_positions in zip(spans, self.scan(spans)):
            text = text or ''
            for offset in reversed(span_positions):
                text = text[:offset] + suffix + text[offset:]
            renamed.append(text)

        return renamed
