"""KSS plugin: style-guide sections from CSS/LESS/SCSS comment blocks"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from pydantic import BaseModel, Field

from tagdoc.core.compiler import Compiler
from tagdoc.core.utils.files import File, read_source


BLOCK_COMMENT_RE = re.compile(r'/\*+(.*?)\*+/', re.DOTALL)
LINE_COMMENT_RE  = re.compile(r'^[ \t]*//[ \t]?(.*)$')
STYLEGUIDE_RE    = re.compile(r'^style\s*guide:?\s+(\S.*)$', re.IGNORECASE)
MARKUP_RE        = re.compile(r'^markup:\s*(.*)$', re.IGNORECASE | re.DOTALL)
MODIFIER_RE      = re.compile(r'^\s*([.:][^\s]+)\s+-\s+(.*)$')


class KssModifier(BaseModel):
    name: str
    documentation: str


class KssExample(BaseModel):
    """One style-guide section, addressed by its `Styleguide` reference."""
    reference:     str
    header:        str
    documentation: str
    markup:        str
    markup_html:   str
    modifiers:     list[KssModifier] = Field(default_factory=list)
    source_path:   str


@dataclass
class KssSection:
    """Raw, unrendered section parsed from one comment block."""
    reference: str
    header: str = ""
    description: str = ""
    markup: str = ""
    modifiers: list[tuple[str, str]] = field(default_factory=list)


def _clean_block(body: str) -> str:
    """Strip the leading ` * ` gutter from a /* */ comment body."""
    return "\n".join(re.sub(r'^[ \t]*\*?[ \t]?', '', line, count=1) for line in body.splitlines())


def extract_comments(text: str) -> list[str]:
    """Return comment bodies: each /* */ block and each run of consecutive // lines."""
    comments = [_clean_block(m.group(1)) for m in BLOCK_COMMENT_RE.finditer(text)]
    run: list[str] = []
    for line in BLOCK_COMMENT_RE.sub("", text).splitlines():
        m = LINE_COMMENT_RE.match(line)
        if m:
            run.append(m.group(1))
        elif run:
            comments.append("\n".join(run))
            run = []
    if run:
        comments.append("\n".join(run))
    return comments


def _paragraphs(comment: str) -> list[str]:
    return [p.strip("\n") for p in re.split(r'\n[ \t]*\n', comment.strip()) if p.strip()]


def parse_section(comment: str) -> KssSection | None:
    """Parse one comment into a KssSection; None unless its last paragraph is `Styleguide <ref>`."""
    paragraphs = _paragraphs(comment)
    if not paragraphs:
        return None
    m = STYLEGUIDE_RE.match(paragraphs[-1].strip())
    if m is None:
        return None

    section = KssSection(reference=m.group(1).strip().rstrip("."))
    description: list[str] = []
    for i, para in enumerate(paragraphs[:-1]):
        lines = para.splitlines()
        markup = MARKUP_RE.match(para.strip())
        if markup:
            section.markup = markup.group(1).strip("\n")
        elif all(MODIFIER_RE.match(line) for line in lines):
            section.modifiers.extend(MODIFIER_RE.match(line).groups() for line in lines)
        elif i == 0:
            section.header = para.strip()
        else:
            description.append(para)
    section.description = "\n\n".join(description)
    return section


def parse_sections(text: str) -> list[KssSection]:
    return [s for s in map(parse_section, extract_comments(text)) if s is not None]


class KssPlugin:
    """Emits {"css": {reference: KssExample}} from KSS-documented stylesheets.

    See http://warpspire.com/kss/syntax/ for the comment format.
    """

    async def compile(self, files: Sequence[File], compiler: Compiler) -> dict[str, Any]:
        examples = await asyncio.gather(*(
            self._convert(section, compiler.relative_path(f.path), compiler)
            for f in files
            for section in parse_sections(read_source(f))
        ))
        return {"css": compiler.objectify(examples, lambda e: e.reference)}

    async def _convert(self, section: KssSection, source_path: str, compiler: Compiler) -> KssExample:
        documentation, markup_html = await asyncio.gather(
            compiler.render_markdown(section.description),
            compiler.render_markdown(f"```html\n{section.markup}\n```"),
        )
        modifiers = [
            KssModifier(name=name, documentation=await compiler.render_markdown(doc))
            for name, doc in section.modifiers
        ]
        return KssExample(
            reference=section.reference,
            header=section.header,
            documentation=documentation,
            markup=section.markup,
            markup_html=markup_html,
            modifiers=modifiers,
            source_path=source_path,
        )
