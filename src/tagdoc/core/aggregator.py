"""Plugin aggregator: routes files to plugins and merges their outputs"""

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from tagdoc.config import Settings
from tagdoc.core.compiler import Compiler, Renderer
from tagdoc.core.diagnostics import Diagnostics, LoggingDiagnostics
from tagdoc.core.utils.files import File, expand_globs
from tagdoc.plugins.base import Plugin


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PluginEntry:
    """A plugin and the pattern its files' absolute paths must match."""
    pattern: re.Pattern
    plugin: Plugin


def _compile_pattern(pattern: Union[str, re.Pattern]) -> re.Pattern:
    """A string is a literal path suffix ("package.json", ".md"); a regex is searched as-is."""
    if isinstance(pattern, str):
        return re.compile(f"{re.escape(pattern)}$")
    return pattern


class Aggregator:
    """Immutable list of plugin registrations plus the settings for one compiler.

    Chain registrations: `Aggregator.create().register(".md", MarkdownPlugin())`.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        entries: Sequence[PluginEntry] = (),
        diagnostics: Optional[Diagnostics] = None,
        renderer: Optional[Renderer] = None,
        ):
        self.settings = settings or Settings()
        self.entries = tuple(entries)
        self.diagnostics = diagnostics or LoggingDiagnostics()
        self.renderer = renderer

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        diagnostics: Optional[Diagnostics] = None,
        renderer: Optional[Renderer] = None,
        ) -> "Aggregator":
        return cls(settings, (), diagnostics, renderer)

    def register(self, pattern: Union[str, re.Pattern], plugin: Plugin) -> "Aggregator":
        """Return a new Aggregator with plugin appended; this instance is unchanged."""
        entry = PluginEntry(_compile_pattern(pattern), plugin)
        return Aggregator(self.settings, (*self.entries, entry), self.diagnostics, self.renderer)

    def clear_plugins(self) -> "Aggregator":
        return Aggregator(self.settings, (), self.diagnostics, self.renderer)

    async def run_globs(self, *patterns: str) -> dict[str, Any]:
        """Expand glob patterns to files and document them."""
        return await self.run(expand_globs(patterns))

    async def run(self, files: Iterable[File]) -> dict[str, Any]:
        """Compile files with every registered plugin and merge the results.

        Plugins run concurrently against one shared Compiler. Results merge in
        registration order, so on a key collision the later plugin wins. The
        first plugin failure cancels the rest and propagates.
        """
        files = list(files)
        compiler = Compiler.from_settings(self.settings, self.renderer)
        tasks = [
            asyncio.ensure_future(self._compile(entry, [f for f in files if entry.pattern.search(f.path)], compiler))
            for entry in self.entries
        ]
        try:
            results = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            raise

        documentation: dict[str, Any] = {}
        for result in results:
            self._merge_into(documentation, result)
        return documentation

    async def _compile(self, entry: PluginEntry, files: list[File], compiler: Compiler) -> dict[str, Any]:
        plugin = entry.plugin
        logger.debug("Compiling %d file(s) with %s", len(files), type(plugin).__name__)
        if inspect.iscoroutinefunction(plugin.compile):
            return await plugin.compile(files, compiler)
        # sync plugins may block on I/O (npm lookups); keep them off the event loop
        result = await asyncio.to_thread(plugin.compile, files, compiler)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _merge_into(self, destination: dict[str, Any], source: dict[str, Any]) -> None:
        """Shallow-merge non-None keys from source, warning on keys already present."""
        for key, value in source.items():
            if value is None:
                continue
            if destination.get(key) is not None:
                self.diagnostics.warn(f'Duplicate plugin key "{key}". Your plugins are overwriting each other.')
            destination[key] = value
