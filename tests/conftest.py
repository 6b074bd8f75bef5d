"""Root test configuration: shared compiler and diagnostics fixtures"""

import pytest

from tagdoc.core.compiler import Compiler
from tagdoc.core.diagnostics import CollectingDiagnostics


@pytest.fixture(name="diagnostics")
def diagnostics_fixture():
    """Warning sink whose messages tests can assert on."""
    return CollectingDiagnostics()


@pytest.fixture(name="compiler")
def compiler_fixture():
    """Compiler with default markdown rendering and `/docs` as the source base dir."""
    return Compiler(source_base_dir="/docs")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep TAGDOC_* variables from the developer's shell out of every test."""
    for name in ("NAV_PAGE", "MARKDOWN_PRESET", "RESERVED_TAGS", "SOURCE_BASE_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(f"TAGDOC_{name}", raising=False)
