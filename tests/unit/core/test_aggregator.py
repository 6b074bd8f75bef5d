"""Unit tests for core/aggregator.py"""

import asyncio
import re

import pytest

from tagdoc.config import Settings
from tagdoc.core.aggregator import Aggregator
from tagdoc.core.utils.files import MemoryFile


FILES = [
    MemoryFile("/repo/README.md", "# Readme"),
    MemoryFile("/repo/docs/guide.mdx", "# Guide"),
    MemoryFile("/repo/package.json", "{}"),
    MemoryFile("/repo/src/app.py", "x = 1"),
]


class StaticPlugin:
    """Sync plugin returning fixed data and recording what it was given."""

    def __init__(self, data: dict):
        self.data = data
        self.paths: list[str] = []
        self.compiler = None

    def compile(self, files, compiler):
        self.paths = [f.path for f in files]
        self.compiler = compiler
        return self.data


class SlowAsyncPlugin(StaticPlugin):
    def __init__(self, data: dict, delay: float):
        super().__init__(data)
        self.delay = delay

    async def compile(self, files, compiler):
        await asyncio.sleep(self.delay)
        return super().compile(files, compiler)


class FailingPlugin:
    def compile(self, files, compiler):
        raise RuntimeError("plugin exploded")


def _run(docs: Aggregator, files=FILES) -> dict:
    return asyncio.run(docs.run(files))


def test_run_without_plugins_is_empty(diagnostics):
    assert _run(Aggregator.create(diagnostics=diagnostics)) == {}


def test_register_returns_new_instance(diagnostics):
    """register leaves the receiving aggregator untouched."""
    base = Aggregator.create(diagnostics=diagnostics)
    extended = base.register(".md", StaticPlugin({"a": 1}))
    assert base.entries == ()
    assert len(extended.entries) == 1
    assert extended.clear_plugins().entries == ()


def test_string_pattern_is_literal_suffix(diagnostics):
    """'.md' matches only paths ending in .md; a regex is searched as-is."""
    md, mdx, pkg = StaticPlugin({}), StaticPlugin({}), StaticPlugin({})
    docs = (
        Aggregator.create(diagnostics=diagnostics)
        .register(".md", md)
        .register(re.compile(r"\.mdx?$"), mdx)
        .register("package.json", pkg)
    )
    _run(docs)
    assert md.paths == ["/repo/README.md"]
    assert mdx.paths == ["/repo/README.md", "/repo/docs/guide.mdx"]
    assert pkg.paths == ["/repo/package.json"]


def test_plugin_without_matches_still_runs(diagnostics):
    plugin = StaticPlugin({"css": {}})
    result = _run(Aggregator.create(diagnostics=diagnostics).register(".css", plugin))
    assert plugin.paths == []
    assert result == {"css": {}}


def test_merges_distinct_keys(diagnostics):
    docs = (
        Aggregator.create(diagnostics=diagnostics)
        .register(".md", StaticPlugin({"pages": {"a": 1}, "nav": []}))
        .register(".py", StaticPlugin({"python": {"x": 2}}))
    )
    assert _run(docs) == {"pages": {"a": 1}, "nav": [], "python": {"x": 2}}
    assert diagnostics.warnings == []


def test_key_collision_later_plugin_wins(diagnostics):
    """Colliding keys keep the later registration's value and warn once."""
    docs = (
        Aggregator.create(diagnostics=diagnostics)
        .register(".md", StaticPlugin({"shared": "X"}))
        .register(".py", StaticPlugin({"shared": "Y"}))
    )
    assert _run(docs) == {"shared": "Y"}
    assert len(diagnostics.warnings) == 1
    assert '"shared"' in diagnostics.warnings[0]


def test_merge_order_follows_registration_not_completion(diagnostics):
    """A slow first plugin still loses a collision to a fast second plugin."""
    docs = (
        Aggregator.create(diagnostics=diagnostics)
        .register(".md", SlowAsyncPlugin({"shared": "first"}, delay=0.05))
        .register(".py", StaticPlugin({"shared": "second"}))
    )
    assert _run(docs) == {"shared": "second"}


def test_none_values_are_skipped(diagnostics):
    docs = (
        Aggregator.create(diagnostics=diagnostics)
        .register(".md", StaticPlugin({"shared": "X"}))
        .register(".py", StaticPlugin({"shared": None, "other": None}))
    )
    assert _run(docs) == {"shared": "X"}
    assert diagnostics.warnings == []


def test_plugins_share_one_compiler(diagnostics):
    first, second = StaticPlugin({}), SlowAsyncPlugin({}, delay=0)
    _run(Aggregator.create(diagnostics=diagnostics).register(".md", first).register(".py", second))
    assert first.compiler is not None
    assert first.compiler is second.compiler


def test_compiler_uses_settings(diagnostics):
    plugin = StaticPlugin({})
    settings = Settings(reserved_tags=["Decorator"], source_base_dir="/repo")
    _run(Aggregator.create(settings, diagnostics).register(".md", plugin))
    assert plugin.compiler.reserved_tags == ("Decorator",)
    assert plugin.compiler.relative_path("/repo/docs/guide.mdx") == "docs/guide.mdx"


def test_plugin_failure_aborts_run(diagnostics):
    docs = (
        Aggregator.create(diagnostics=diagnostics)
        .register(".md", StaticPlugin({"pages": {}}))
        .register(".py", FailingPlugin())
    )
    with pytest.raises(RuntimeError, match="plugin exploded"):
        _run(docs)


def test_run_globs(tmp_path, monkeypatch, diagnostics):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.md").write_text("# A")
    (tmp_path / "b.txt").write_text("b")
    plugin = StaticPlugin({"ok": True})
    docs = Aggregator.create(diagnostics=diagnostics).register(".md", plugin)
    assert asyncio.run(docs.run_globs("*")) == {"ok": True}
    assert plugin.paths == [str(tmp_path / "a.md")]
