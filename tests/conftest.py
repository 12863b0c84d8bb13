from __future__ import annotations

import pytest

from xquery import XQuery, load

SIMPLE_HTML = """
    <div id="root">
        <span id="my_id" class="hello-world lol">
            <div class="test test1">blah blah</div>
            <div class="tested">blah blah</div>
            <p class="test test2">blah blah</p>
            <p class="with-child">
                <span class="child1">child1</span>
                <span class="child2">child2</span>
            </p>
        </span>
        <div>
            <div class="test">hello world!</div>
            <div>hello again</div>
        </div>
    </div>
"""


@pytest.fixture()
def simple_html() -> str:
    return SIMPLE_HTML


@pytest.fixture()
def doc() -> XQuery:
    return load(SIMPLE_HTML)
