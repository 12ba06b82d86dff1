"""
Rows - Clonación de filas de tabla con variables numeradas

Cada copia de la fila recibe el sufijo '#<n>' en todas sus variables:
${clave}, ${cliente} -> ${clave#1}, ${cliente#1}; ${clave#2}, ${cliente#2}...
"""

from copy import deepcopy

from lxml import etree

from template_engine.document_model import node_text, set_text, text_leaves
from template_engine.placeholders import PlaceholderIndex, RowSuffixScanner, VariableSyntax, token_pattern
from template_engine.utils import setup_logger

logger = setup_logger(__name__)


def number_row_variables(row: etree._Element, number: int, syntax: VariableSyntax):
    """Añade '#<number>' a todas las variables de una fila."""
    leaves = text_leaves(row)
    spans = [leaf.text or '' for leaf in leaves]
    renamed = RowSuffixScanner(syntax).rename(spans, f'#{number}')

    for leaf, original, text in zip(leaves, spans, renamed):
        if text != original:
            set_text(leaf, text)


def clone_row(index: PlaceholderIndex, name: str, count: int, syntax: VariableSyntax) -> int:
    """
    Clona `count` veces cada fila que contiene la variable `name`.

    Las copias numeradas se insertan delante de la fila original, que se
    elimina después. Con `count` < 1 no se modifica nada.

    Args:
        index: Índice de variables del documento
        name: Variable ancla de la fila
        count: Número de filas deseadas
        syntax: Sintaxis activa

    Returns:
        Número de filas originales reemplazadas
    """
    if count < 1:
        return 0

    name = name.lower()
    pattern = token_pattern(syntax.token(name))
    cloned = 0

    for row in index.lookup_rows(name):
        parent = row.getparent()

        # Fila ya sustituida (entrada duplicada o índice obsoleto)
        if parent is None:
            continue

        if not pattern.search(node_text(row)):
            continue

        for i in range(1, count + 1):
            clone = deepcopy(row)
            number_row_variables(clone, i, syntax)
            row.addprevious(clone)

        parent.remove(row)
        cloned += 1

    index.invalidate_rows(name)

    logger.debug(f"Variable '{name}': {cloned} filas clonadas x{count}")
    return cloned
