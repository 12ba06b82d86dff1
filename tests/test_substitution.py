from pathlib import Path
import itertools
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

import pytest
from lxml import etree

from helpers import NAMESPACES, hyperlink_relationship, paragraph, relationships
from template_engine.document_model import XML_NS, node_text, text_leaves
from template_engine.substitution import covering_leaves, replace_in_paragraph, replace_in_targets, set_value


def make_paragraph(*texts):
    wrapper = etree.fromstring(f'<w:body {NAMESPACES}>{paragraph(*texts)}</w:body>')
    return wrapper[0]


def leaf_texts(p):
    return [leaf.text or '' for leaf in text_leaves(p)]


def test_covering_leaves_spans_split_token():
    p = make_paragraph('Hello ', '${na', 'me', '}!')
    leaves = text_leaves(p)

    working, first_offset = covering_leaves(leaves, 6, len('${name}'))

    assert working == leaves[1:]
    assert first_offset == 6


def test_replace_token_split_across_runs():
    p = make_paragraph('Hello ', '${na', 'me', '}!')

    assert replace_in_paragraph(p, '${name}', 'Ada') == 1
    assert node_text(p) == 'Hello Ada!'
    # El texto se fusiona en la primera hoja del tramo
    assert leaf_texts(p) == ['Hello ', 'Ada!', '', '']


def test_replace_is_case_insensitive():
    p = make_paragraph('Dear ${NAME},')

    assert replace_in_paragraph(p, '${name}', 'Ada') == 1
    assert node_text(p) == 'Dear Ada,'


def test_replace_every_occurrence_in_paragraph():
    p = make_paragraph('${x} and ${', 'x}')

    assert replace_in_paragraph(p, '${x}', '1') == 2
    assert node_text(p) == '1 and 1'


def test_value_containing_token_is_not_rescanned():
    p = make_paragraph('a ${loop} b')

    assert replace_in_paragraph(p, '${loop}', '${loop}${loop}') == 1
    assert node_text(p) == 'a ${loop}${loop} b'


def test_set_value_is_idempotent_once_replaced():
    p = make_paragraph('${name}')

    assert set_value([p], '${name}', 'Ada') == 1
    assert set_value([p], '${name}', 'Bob') == 0
    assert node_text(p) == 'Ada'


def test_set_value_none_clears_token():
    p = make_paragraph('[', '${opt}', ']')

    set_value([p], '${opt}', None)

    assert node_text(p) == '[]'


def test_leading_space_sets_preserve():
    p = make_paragraph('${pad}')
    leaf = text_leaves(p)[0]
    del leaf.attrib[f'{{{XML_NS}}}space']

    set_value([p], '${pad}', ' x ')

    assert leaf.get(f'{{{XML_NS}}}space') == 'preserve'


def test_replace_in_relationship_targets():
    rels = etree.fromstring(relationships(
        hyperlink_relationship('rId9', 'https://example.com/${slug}?ref=${SLUG}'),
    ).encode('utf-8'))

    assert replace_in_targets(list(rels), '${slug}', 'informe') == 2
    assert rels[0].get('Target') == 'https://example.com/informe?ref=informe'


SPLIT_TEXT = 'Hello ${name}, total: ${total}'


def partitions(text, max_runs=4):
    for cuts in range(max_runs):
        for points in itertools.combinations(range(1, len(text)), cuts):
            bounds = (0,) + points + (len(text),)
            yield [text[start:end] for start, end in zip(bounds, bounds[1:])]


@pytest.mark.parametrize('runs', list(partitions(SPLIT_TEXT)), ids=lambda runs: '|'.join(runs))
def test_replace_any_run_partition(runs):
    p = make_paragraph(*runs)

    assert set_value([p], '${name}', 'Ada') == 1
    assert set_value([p], '${total}', '42') == 1
    assert node_text(p) == 'Hello Ada, total: 42'
