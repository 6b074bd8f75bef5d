"""Unit tests for plugins/markdown.py"""

import asyncio

import pytest

from tagdoc.core.errors import MissingPageError, PluginError, ReferenceCycleError
from tagdoc.core.models import HeadingNode, PageNode, is_heading, is_tag
from tagdoc.core.utils.files import MemoryFile
from tagdoc.plugins.markdown import UNTITLED, MarkdownPlugin


NAV = MemoryFile("/docs/_nav.md", "@page a\n@page b")
ALPHA = MemoryFile("/docs/a.md", "@# Alpha\nintro\n@## Section One\ntext\n@page c")
GAMMA = MemoryFile("/docs/nested/c.md", "@# Gamma\nbody")
BETA = MemoryFile("/docs/b.md", "---\ntitle: Beta Page\n---\n@include snippet\nafter")
SNIPPET = MemoryFile("/docs/snippet.md", "@## Snippet Heading\nsnippet text")

SITE = [NAV, ALPHA, GAMMA, BETA, SNIPPET]


def _compile(compiler, files, diagnostics=None, nav_page="_nav"):
    return asyncio.run(MarkdownPlugin(nav_page, diagnostics).compile(files, compiler))


def _headings(page):
    return [c for c in page.contents if is_heading(c)]


def test_no_files(compiler):
    assert _compile(compiler, []) == {"nav": [], "pages": {}}


def test_pages_keyed_by_reference(compiler):
    pages = _compile(compiler, SITE)["pages"]
    assert list(pages) == ["_nav", "a", "c", "b", "snippet"]
    assert pages["c"].source_path == "nested/c.md"


def test_titles(compiler):
    """Title comes from metadata, else the leading heading, else a placeholder."""
    pages = _compile(compiler, SITE)["pages"]
    assert pages["a"].title == "Alpha"
    assert pages["b"].title == "Beta Page"
    assert pages["_nav"].title == UNTITLED


def test_nav_tree(compiler):
    nav = _compile(compiler, SITE)["nav"]
    assert [n.reference for n in nav] == ["a", "b"]
    alpha = nav[0]
    assert alpha.level == 1
    assert alpha.children == [
        HeadingNode(title="Section One", level=2, route="a.section-one"),
        PageNode(reference="c", route="a/c", level=2, title="Gamma"),
    ]


def test_routes_written_back_to_pages(compiler):
    pages = _compile(compiler, SITE)["pages"]
    assert pages["a"].route == "a"
    assert pages["c"].route == "a/c"
    assert [h.route for h in _headings(pages["a"])] == ["a", "a.section-one"]
    assert [h.route for h in _headings(pages["c"])] == ["a/c"]


def test_include_splices_contents(compiler):
    """@include is replaced by the snippet's contents; the spliced heading gets the includer's route."""
    result = _compile(compiler, SITE)
    beta = result["pages"]["b"]
    assert not any(is_tag(c, "include") for c in beta.contents)
    assert beta.contents[-1] == "<p>after</p>\n"
    assert [h.route for h in _headings(beta)] == ["b.snippet-heading"]
    assert result["nav"][1].children == [HeadingNode(title="Snippet Heading", level=2, route="b.snippet-heading")]


def test_included_page_keeps_its_own_heading(compiler):
    """A page outside the nav keeps empty heading routes even after being included."""
    snippet = _compile(compiler, SITE)["pages"]["snippet"]
    assert [h.route for h in _headings(snippet)] == [""]


def test_nested_includes_resolve_in_any_order(compiler):
    files = [
        MemoryFile("/docs/_nav.md", "@page x"),
        MemoryFile("/docs/x.md", "@include y"),
        MemoryFile("/docs/y.md", "why\n@include z"),
        MemoryFile("/docs/z.md", "zed"),
    ]
    pages = _compile(compiler, files)["pages"]
    assert pages["x"].contents == ["<p>why</p>\n", "<p>zed</p>\n"]


def test_include_can_add_pages_to_nav(compiler):
    files = [
        MemoryFile("/docs/_nav.md", "@include toc"),
        MemoryFile("/docs/toc.md", "@page x"),
        MemoryFile("/docs/x.md", "@# X"),
    ]
    nav = _compile(compiler, files)["nav"]
    assert [n.route for n in nav] == ["x"]


def test_metadata_reference_overrides_file_name(compiler):
    files = [
        MemoryFile("/docs/_nav.md", "@page custom"),
        MemoryFile("/docs/file-name.md", "---\nreference: custom\n---\n@# Custom"),
    ]
    result = _compile(compiler, files)
    assert list(result["pages"]) == ["_nav", "custom"]
    assert result["nav"][0].route == "custom"
    assert result["pages"]["custom"].source_path == "file-name.md"


def test_duplicate_reference_warns(compiler, diagnostics):
    files = [
        NAV, ALPHA, GAMMA, BETA, SNIPPET,
        MemoryFile("/docs/other/snippet.md", "replacement"),
    ]
    pages = _compile(compiler, files, diagnostics)["pages"]
    assert len(diagnostics.warnings) == 1
    assert 'duplicate page "snippet"' in diagnostics.warnings[0]
    assert pages["snippet"].source_path == "other/snippet.md"


def test_custom_nav_page(compiler):
    files = [MemoryFile("/docs/index.md", "@page a"), ALPHA, GAMMA]
    nav = _compile(compiler, files, nav_page="index")["nav"]
    assert [n.reference for n in nav] == ["a"]


def test_missing_nav_page(compiler):
    with pytest.raises(MissingPageError, match='nav page "_nav" does not exist'):
        _compile(compiler, [ALPHA, GAMMA])


def test_missing_nav_child(compiler):
    with pytest.raises(MissingPageError, match="Unknown @page 'c'"):
        _compile(compiler, [NAV, ALPHA, BETA, SNIPPET])


def test_missing_include(compiler):
    with pytest.raises(MissingPageError) as excinfo:
        _compile(compiler, [NAV, ALPHA, GAMMA, BETA])
    assert excinfo.value.reference == "snippet"
    assert "in 'b'" in str(excinfo.value)


def test_include_cycle(compiler):
    files = [
        MemoryFile("/docs/_nav.md", "@page p"),
        MemoryFile("/docs/p.md", "@include q"),
        MemoryFile("/docs/q.md", "@include p"),
    ]
    with pytest.raises(ReferenceCycleError, match="Circular @include"):
        _compile(compiler, files)


def test_page_cycle(compiler):
    files = [
        MemoryFile("/docs/_nav.md", "@page p"),
        MemoryFile("/docs/p.md", "@page q"),
        MemoryFile("/docs/q.md", "@page p"),
    ]
    with pytest.raises(ReferenceCycleError) as excinfo:
        _compile(compiler, files)
    assert excinfo.value.chain == ["_nav", "p", "q", "p"]


def test_bad_front_matter_names_file(compiler):
    files = [NAV, MemoryFile("/docs/a.md", "---\nkey: [unclosed\n---\nbody")]
    with pytest.raises(PluginError) as excinfo:
        _compile(compiler, files)
    assert excinfo.value.path == "/docs/a.md"
