"""Tag-block compiler: front matter extraction, @tag splitting, and markdown rendering"""

import asyncio
import inspect
import os
import re
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar, Union

import yaml
from markdown_it import MarkdownIt

from tagdoc.core.errors import MetadataError
from tagdoc.core.models import Block, ContentNode, HeadingTag, Tag


T = TypeVar('T')
Renderer = Callable[[str], Union[str, Awaitable[str]]]

# empty block first, so a later `---` line in the body is never mistaken for the closer
FRONTMATTER_RE = re.compile(r'\A---\n(?:---\n|(.*?)\n---\n)', re.DOTALL)
TAG_SPLIT_RE = re.compile(r'^(@\S+(?:[ \t]+[^\n]*)?)$', re.MULTILINE)
TAG_RE = re.compile(r'@(\S+)(?:[ \t]+(.*))?')
HEADING_RE = re.compile(r'#{1,6}')


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def extract_metadata(text: str) -> tuple[dict[str, Any], str]:
    """Return (metadata, body) with a leading `---` YAML block removed.

    Text without a front matter block comes back unchanged with empty metadata.
    """
    m = FRONTMATTER_RE.match(text)
    if m is None:
        return {}, text
    try:
        metadata = yaml.safe_load(m.group(1) or "") or {}
    except yaml.YAMLError as e:
        raise MetadataError(f"Invalid YAML front matter: {e}") from e
    if not isinstance(metadata, dict):
        raise MetadataError(f"Invalid YAML front matter: expected a mapping, got {type(metadata).__name__}")
    # YAML allows int and date keys (`404: ...`); the document is JSON, so keys are strings
    return {str(k): v for k, v in metadata.items()}, text[m.end():]


def parse_tags(content: str, reserved: Iterable[str] = ()) -> list[ContentNode]:
    """Split content on `@tag value` lines into prose strings and tag nodes.

    Tags named in `reserved` stay in the prose. Adjacent prose is merged so a
    fenced code block is never split across nodes. Tags named `#` through
    `######` become HeadingTags with an empty route.
    """
    reserved = set(reserved)
    nodes: list[ContentNode] = []
    for chunk in TAG_SPLIT_RE.split(content):
        match = TAG_RE.fullmatch(chunk)
        if match is None or match.group(1) in reserved:
            if nodes and isinstance(nodes[-1], str):
                nodes[-1] += chunk
            else:
                nodes.append(chunk)
            continue

        name, value = match.group(1), (match.group(2) or "").strip()
        if HEADING_RE.fullmatch(name):
            nodes.append(HeadingTag(level=len(name), value=value))
        else:
            nodes.append(Tag(tag=name, value=value))
    return nodes


class Compiler:
    """Shared, read-only compiler handed to every plugin in a run."""

    def __init__(
        self,
        reserved_tags: Iterable[str] = (),
        source_base_dir: Optional[str] = None,
        renderer: Optional[Renderer] = None,
        markdown_preset: str = "gfm-like",
        ):
        self.reserved_tags = tuple(reserved_tags)
        self.source_base_dir = source_base_dir
        self._renderer = renderer or _make_parser(markdown_preset).render

    @classmethod
    def from_settings(cls, settings, renderer: Optional[Renderer] = None) -> "Compiler":
        return cls(
            reserved_tags=settings.reserved_tags,
            source_base_dir=settings.source_base_dir,
            renderer=renderer,
            markdown_preset=settings.markdown_preset,
        )

    def objectify(self, items: Iterable[T], key: Callable[[T], str]) -> dict[str, T]:
        """Map key(item) -> item; later items replace earlier ones with the same key."""
        return {key(item): item for item in items}

    def relative_path(self, path: str) -> str:
        """Return path relative to source_base_dir (cwd when unset)."""
        return os.path.relpath(path, self.source_base_dir or os.getcwd())

    async def render_markdown(self, markdown: str) -> str:
        html = self._renderer(markdown)
        if inspect.isawaitable(html):
            html = await html
        return html

    async def render_block(self, text: str, reserved_tags: Optional[Iterable[str]] = None) -> Block:
        """Compile raw text into a Block: metadata, stripped body, rendered contents."""
        metadata, body = extract_metadata(text)
        body = body.strip()
        reserved = self.reserved_tags if reserved_tags is None else reserved_tags
        contents = await self._render_contents(body, reserved)
        return Block(metadata=metadata, raw_body=body, contents=contents)

    async def _render_contents(self, content: str, reserved: Iterable[str]) -> list[ContentNode]:
        """Render prose nodes to HTML in order; prose that renders empty is dropped."""
        nodes = parse_tags(content, reserved)
        html = iter(await asyncio.gather(*(self.render_markdown(n) for n in nodes if isinstance(n, str))))
        rendered = [next(html) if isinstance(n, str) else n for n in nodes]
        return [n for n in rendered if n != ""]
