from __future__ import annotations

from pathlib import Path

import pytest
from lxml import html

from xquery import Document, DocumentImportError, load
from xquery.engine import EMPTY_PATH, FRAGMENT_ROOT_TAG, attributes_of, run_query, serialize_markup, serialize_text


def test_load_markup_string(doc) -> None:
    assert doc.length() == 1
    assert doc.nodes[0].tag == "html"
    assert doc.previous is None
    assert doc.root() is doc


def test_load_markup_bytes_with_encoding() -> None:
    xq = load("<p>café</p>".encode("latin-1"), encoding="latin-1")

    assert xq.find("p").text() == "café"


@pytest.mark.parametrize("label", ["latin-1", "latin1", "ISO-8859-1", "L1"])
def test_encoding_aliases_are_normalized(label: str) -> None:
    document = Document("<p>café</p>".encode("latin-1"), encoding=label)

    assert document.encoding == "iso8859-1"
    assert document.query("//p")[0].text == "café"


def test_unknown_encoding_raises() -> None:
    with pytest.raises(DocumentImportError) as excinfo:
        load(b"<p>x</p>", encoding="no-such-codec")

    assert excinfo.value.code == "unknown-encoding"
    assert isinstance(excinfo.value.__cause__, LookupError)


def test_load_file_path(tmp_path: Path, simple_html: str) -> None:
    page = tmp_path / "page.html"
    page.write_text(simple_html, encoding="utf-8")

    assert load(page).find(".test").length() == 3
    assert load(str(page)).find(".test").length() == 3


def test_load_missing_location_raises(tmp_path: Path) -> None:
    with pytest.raises(DocumentImportError) as excinfo:
        load(str(tmp_path / "missing.html"))

    assert excinfo.value.code == "unreadable-location"
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.parametrize("value", [42, 3.5, object(), {"a": 1}])
def test_load_unsupported_kind_raises(value: object) -> None:
    with pytest.raises(DocumentImportError) as excinfo:
        load(value)

    assert isinstance(excinfo.value, TypeError)
    assert excinfo.value.code == "unsupported-document-type"


@pytest.mark.parametrize("value", [None, "", "   \n", b""])
def test_load_nothing_gives_empty_node(value: object) -> None:
    xq = load(value)

    assert xq.length() == 0
    assert xq.document is None
    assert xq.find("p").length() == 0
    assert xq.text() == ""


def test_load_existing_tree_is_borrowed(simple_html: str) -> None:
    tree = html.document_fromstring(simple_html).getroottree()
    xq = load(tree)

    assert xq.document is tree
    found = xq.find("#my_id")
    assert found.nodes[0] is tree.getroot().get_element_by_id("my_id")


def test_load_element_imports_a_copy() -> None:
    element = html.fragment_fromstring('<div><p class="a">1</p><p>2</p></div>')
    xq = load(element)

    assert xq.length() == 1
    assert xq.find("p").length() == 2
    assert xq.find(".a").nodes[0] is not element[0]
    assert xq.parent().length() == 0
    # The source element keeps its children
    assert len(element) == 2
    assert element[0].get("class") == "a"


def test_load_node_list() -> None:
    items = html.fragment_fromstring("<ul><li>one <b>1</b></li><li>two</li></ul>").xpath("li")
    xq = load(items)

    assert xq.length() == 2
    assert xq.path == "/*/*"
    assert xq.document.getroot().tag == FRAGMENT_ROOT_TAG
    assert xq.find("b").text() == "1"
    assert xq.eq(1).text() == "two"
    # Imported nodes are the top of the document
    assert [node.tag for node in xq.find("b").parents().nodes] == ["li"]
    assert xq.find("b").parent().parent().length() == 0
    assert xq.parents().length() == 0
    assert xq.find("b").parents("*").length() == 1


def test_load_node_list_rejects_non_elements() -> None:
    with pytest.raises(DocumentImportError) as excinfo:
        load(["<p>not a node</p>"])

    assert excinfo.value.code == "invalid-node-list"


def test_document_paths(simple_html: str) -> None:
    assert Document(simple_html).path == "/*"
    assert Document(None).path == EMPTY_PATH
    assert Document(None).query("/*") == []


def test_run_query_drops_non_element_results(simple_html: str) -> None:
    tree = Document(simple_html).tree

    assert len(run_query(tree, "//p")) == 2
    assert run_query(tree, "count(//p)") == []
    assert run_query(tree, "//p/@class") == []
    assert run_query(tree, "") == []
    assert run_query(None, "//p") == []
    assert run_query(tree, EMPTY_PATH) == []


def test_serializers(simple_html: str) -> None:
    tree = Document(simple_html).tree
    spans = run_query(tree, '//span[@class="child1" or @class="child2"]')

    assert serialize_markup(spans) == '<span class="child1">child1</span><span class="child2">child2</span>'
    assert serialize_text(spans) == "child1child2"
    assert serialize_markup([]) == ""
    assert attributes_of(spans[0]) == {"class": "child1"}
