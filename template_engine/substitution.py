"""
Substitution - Reemplazo de variables repartidas entre varios runs

Word puede partir un mismo marcador en tantos runs como cambios de formato
haya tenido. Para cada ocurrencia se localiza el tramo mínimo de hojas que la
cubre, se fusiona su texto en la primera hoja y se reemplaza una sola vez.
"""

from typing import Iterable, List, Optional, Tuple

from lxml import etree

from template_engine.document_model import set_text, text_leaves
from template_engine.placeholders import token_pattern
from template_engine.utils import setup_logger

logger = setup_logger(__name__)


def covering_leaves(leaves: List[etree._Element], start: int, length: int) -> Tuple[List[etree._Element], int]:
    """
    Tramo contiguo mínimo de hojas que cubre [start, start + length).

    Args:
        leaves: Hojas de texto en orden de documento
        start: Offset inicial en el texto agregado
        length: Longitud del token

    Returns:
        Tupla (hojas del tramo, offset de la primera hoja en el texto agregado)
    """
    working = []
    processed = 0
    first_offset = 0

    for leaf in leaves:
        leaf_start = processed
        processed += len(leaf.text or '')

        if processed <= start:
            continue

        if not working:
            first_offset = leaf_start
        working.append(leaf)

        if processed >= start + length:
            break

    return working, first_offset


def replace_in_paragraph(paragraph: etree._Element, token: str, value: str) -> int:
    """
    Reemplaza todas las ocurrencias de `token` en un párrafo.

    Args:
        paragraph: Párrafo (w:p)
        token: Token completo, p.ej. '${nombre}'
        value: Texto de reemplazo

    Returns:
        Número de reemplazos realizados
    """
    pattern = token_pattern(token)
    replaced = 0
    search_from = 0

    while True:
        leaves = text_leaves(paragraph)
        full_text = ''.join(leaf.text or '' for leaf in leaves)

        # El texto ya insertado no se vuelve a examinar
        match = pattern.search(full_text, search_from)
        if match is None:
            break

        working, first_offset = covering_leaves(leaves, match.start(), len(token))
        if not working:
            break

        content_leaf = working[0]
        merged = content_leaf.text or ''

        for leaf in working[1:]:
            merged += leaf.text or ''
            set_text(leaf, '')

        # Un único reemplazo, en la posición encontrada
        local = match.start() - first_offset
        local_match = pattern.match(merged, local)

        if local_match is None:
            set_text(content_leaf, merged)
            logger.warning(f"No se pudo reemplazar '{token}' en un párrafo indexado")
            break

        set_text(content_leaf, merged[:local] + value + merged[local_match.end():])

        replaced += 1
        search_from = match.start() + len(value)

    return replaced


def set_value(paragraphs: Iterable[etree._Element], token: str, value: Optional[str]) -> int:
    """
    Reemplaza un token en una lista de párrafos indexados.

    Returns:
        Número total de reemplazos
    """
    value = '' if value is None else str(value)
    total = 0

    for paragraph in paragraphs:
        total += replace_in_paragraph(paragraph, token, value)

    return total


def replace_in_targets(relationships: Iterable[etree._Element], token: str, value: Optional[str]) -> int:
    """Reemplaza el token en el atributo Target de relaciones (enlaces dinámicos)."""
    value = '' if value is None else str(value)
    pattern = token_pattern(token)
    total = 0

    for element in relationships:
        target, count = pattern.subn(lambda m: value, element.get('Target', ''))
        if count:
            element.set('Target', target)
            total += count

    return total
