"""Markdown pages plugin: page store, @include splicing, nav tree and route resolution"""

import asyncio
from pathlib import Path
from typing import Any, Optional, Sequence

from tagdoc.core.compiler import Compiler
from tagdoc.core.diagnostics import Diagnostics, LoggingDiagnostics
from tagdoc.core.errors import MetadataError, MissingPageError, PluginError, ReferenceCycleError
from tagdoc.core.models import Block, ContentNode, HeadingNode, Page, PageNode, is_heading, is_tag
from tagdoc.core.pages import PageStore
from tagdoc.core.utils.files import File, read_source
from tagdoc.core.utils.slug import slugify


UNTITLED = "(untitled)"


def _reference(source_path: str, block: Block) -> str:
    """metadata `reference`, else the file name without its extension."""
    if block.metadata.get("reference") is not None:
        return str(block.metadata["reference"])
    return Path(source_path).stem


def _title(block: Block) -> str:
    if block.metadata.get("title") is not None:
        return str(block.metadata["title"])
    if block.contents and is_heading(block.contents[0]):
        return block.contents[0].value
    return UNTITLED


def _copy(node: ContentNode) -> ContentNode:
    # spliced headings get their own route, so they must not be shared between pages
    return node if isinstance(node, str) else node.model_copy()


def resolve_includes(store: PageStore) -> None:
    """Replace every `@include ref` tag with a copy of page ref's contents, in place.

    Included pages are expanded first, so nested includes resolve regardless
    of the order pages were stored in.
    """
    resolved: dict[str, list[ContentNode]] = {}

    def expand(page: Page, chain: tuple[str, ...]) -> list[ContentNode]:
        if page.reference in resolved:
            return resolved[page.reference]
        contents: list[ContentNode] = []
        for node in page.contents:
            if not is_tag(node, "include"):
                contents.append(node)
                continue
            if node.value in chain:
                raise ReferenceCycleError("include", [*chain, node.value])
            included = store.get(node.value)
            if included is None:
                raise MissingPageError(node.value, f"Unknown @include reference '{node.value}' in '{page.reference}'")
            contents.extend(_copy(n) for n in expand(included, (*chain, node.value)))
        resolved[page.reference] = contents
        return contents

    for page in store.pages():
        page.contents = expand(page, (page.reference,))


def _resolve_route(store: PageStore, node: PageNode | HeadingNode, parent: Optional[PageNode] = None) -> None:
    """Set `route` on node and, for pages, on the stored page and its heading tags, then recurse."""
    base = [] if parent is None else [parent.route]
    if isinstance(node, HeadingNode):
        node.route = ".".join(base + [slugify(node.title)])
        return

    route = "/".join(base + [node.reference])
    node.route = route
    page = store.get(node.reference)
    page.route = route
    for content in page.contents:
        if is_heading(content):
            # h1 is the page title, so it shares the page route
            content.route = f"{route}.{slugify(content.value)}" if content.level > 1 else route
    for child in node.children:
        _resolve_route(store, child, node)


def resolve_routes(store: PageStore, nav: Sequence[PageNode]) -> None:
    """Walk the nav tree top-down and fill in routes for pages and headings."""
    for node in nav:
        _resolve_route(store, node)


class MarkdownPlugin:
    """Renders markdown pages and builds a navigation tree from `@page` and `@#+` tags.

    Output: {"nav": [PageNode, ...], "pages": {reference: Page}}.
    """

    def __init__(self, nav_page: str = "_nav", diagnostics: Optional[Diagnostics] = None):
        self.nav_page = nav_page
        self.diagnostics = diagnostics or LoggingDiagnostics()

    async def compile(self, files: Sequence[File], compiler: Compiler) -> dict[str, Any]:
        if not files:
            return {"nav": [], "pages": {}}

        store = await self.build_page_store(files, compiler)
        # includes may add @page and heading tags, so they go before the tree
        resolve_includes(store)
        if store.get(self.nav_page) is None:
            raise MissingPageError(
                self.nav_page, f'Error generating page map: nav page "{self.nav_page}" does not exist.'
            )
        nav = [n for n in store.build_tree(self.nav_page).children if isinstance(n, PageNode)]
        resolve_routes(store, nav)
        return {"nav": nav, "pages": store.to_dict()}

    async def build_page_store(self, files: Sequence[File], compiler: Compiler) -> PageStore:
        """Render every file to a Page and store it under its reference."""
        store = PageStore(self.diagnostics)
        pages = await asyncio.gather(*(self._to_page(f, compiler) for f in files))
        for page in pages:
            store.set(page.reference, page)
        return store

    async def _to_page(self, file: File, compiler: Compiler) -> Page:
        try:
            block = await compiler.render_block(read_source(file))
        except MetadataError as e:
            raise PluginError(file.path, e) from e

        source_path = compiler.relative_path(file.path)
        reference = _reference(source_path, block)
        return Page(
            reference=reference,
            route=reference,
            source_path=source_path,
            title=_title(block),
            metadata=block.metadata,
            raw_body=block.raw_body,
            contents=block.contents,
        )
