"""In-memory page store and navigation tree construction"""

from typing import Optional

from tagdoc.core.diagnostics import Diagnostics, LoggingDiagnostics
from tagdoc.core.errors import MissingPageError, ReferenceCycleError
from tagdoc.core.models import HeadingNode, Page, PageNode, is_heading, is_tag


class PageStore:
    """Pages for a single compilation run, keyed by reference."""

    def __init__(self, diagnostics: Optional[Diagnostics] = None):
        self._pages: dict[str, Page] = {}
        self.diagnostics = diagnostics or LoggingDiagnostics()

    def pages(self) -> list[Page]:
        return list(self._pages.values())

    def get(self, reference: str) -> Page | None:
        return self._pages.get(reference)

    def remove(self, reference: str) -> Page | None:
        """Remove and return the page, or None if not found."""
        return self._pages.pop(reference, None)

    def set(self, reference: str, page: Page) -> None:
        """Store page under reference; an existing page is overwritten with a warning."""
        if reference in self._pages:
            self.diagnostics.warn(
                f'Found duplicate page "{reference}"; overwriting previous data. '
                'Rename headings or use metadata `reference` key to disambiguate.'
            )
        self._pages[reference] = page

    def to_dict(self) -> dict[str, Page]:
        return dict(self._pages)

    def build_tree(self, reference: str, depth: int = 0) -> PageNode:
        """Build the nav subtree rooted at reference from its @page and @##+ tags.

        Children keep source order. Level-1 headings are the page title and are
        not added. Routes are provisional until resolve_routes runs.
        """
        return self._build_tree(reference, depth, ())

    def _build_tree(self, reference: str, depth: int, ancestors: tuple[str, ...]) -> PageNode:
        if reference in ancestors:
            raise ReferenceCycleError("page", [*ancestors, reference])
        page = self.get(reference)
        if page is None:
            raise MissingPageError(reference, f"Unknown @page '{reference}' in build_tree()")

        node = PageNode(reference=page.reference, route=page.reference, level=depth, title=page.title)
        for content in page.contents:
            if is_tag(content, "page"):
                node.children.append(self._build_tree(content.value, depth + 1, (*ancestors, reference)))
            elif is_heading(content) and content.level > 1:
                node.children.append(HeadingNode(title=content.value, level=node.level + content.level - 1))
        return node
