"""Pipeline step functions: assemble the default plugin set and run a build"""

import asyncio
import json
import re
from typing import Any, Optional, Sequence

from pydantic_core import to_jsonable_python

from tagdoc.config import Settings
from tagdoc.core.aggregator import Aggregator
from tagdoc.core.diagnostics import Diagnostics
from tagdoc.plugins.kss import KssPlugin
from tagdoc.plugins.markdown import MarkdownPlugin
from tagdoc.plugins.npm import NpmPlugin
from tagdoc.plugins.python import PythonPlugin


MARKDOWN_PATTERN = re.compile(r'\.mdx?$')
PYTHON_PATTERN   = re.compile(r'\.py$')
CSS_PATTERN      = re.compile(r'\.(css|less|s[ac]ss)$')


def default_aggregator(
    settings: Settings,
    md: bool = True,
    npm: bool = True,
    py: bool = True,
    css: bool = False,
    diagnostics: Optional[Diagnostics] = None,
    ) -> Aggregator:
    """Register the built-in plugins selected by the flags, in a fixed order."""
    docs = Aggregator.create(settings, diagnostics)
    if md:
        docs = docs.register(MARKDOWN_PATTERN, MarkdownPlugin(settings.nav_page, docs.diagnostics))
    if npm:
        docs = docs.register("package.json", NpmPlugin())
    if py:
        docs = docs.register(PYTHON_PATTERN, PythonPlugin())
    if css:
        docs = docs.register(CSS_PATTERN, KssPlugin())
    return docs


def run_build(aggregator: Aggregator, globs: Sequence[str]) -> dict[str, Any]:
    """Document every file matching globs and return the composite as plain JSON data."""
    documentation = asyncio.run(aggregator.run_globs(*globs))
    return to_jsonable_python(documentation)


def to_json(documentation: dict[str, Any]) -> str:
    return json.dumps(documentation, indent=2, ensure_ascii=False)
