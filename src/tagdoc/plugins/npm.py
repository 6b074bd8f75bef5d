"""NPM plugin: package metadata from package.json files and `npm info`"""

import json
import logging
import re
import subprocess
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from pydantic import BaseModel, Field

from tagdoc.core.compiler import Compiler
from tagdoc.core.errors import PluginError
from tagdoc.core.utils.files import File, read_source


logger = logging.getLogger(__name__)

Lookup = Callable[[str], dict[str, Any]]


class NpmPackageInfo(BaseModel):
    name:           str
    description:    Optional[str] = None
    version:        Optional[str] = None            # from package.json
    latest_version: Optional[str] = None            # `latest` dist-tag
    next_version:   Optional[str] = None            # `next` dist-tag
    private:        bool = False
    published:      bool = False
    source_path:    str
    versions:       list[str] = Field(default_factory=list)


def npm_info(package_name: str) -> dict[str, Any]:
    """Run `npm info --json`; returns {"error": ...} when npm is missing or the lookup fails."""
    try:
        proc = subprocess.run(
            ["npm", "info", "--json", package_name],
            capture_output=True, text=True, timeout=60,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return {"error": str(e)}
    if proc.returncode != 0:
        return {"error": proc.stderr}
    try:
        return json.loads(proc.stdout)
    except json.JSONDecodeError as e:
        return {"error": f"Unreadable npm info output: {e}"}


def _is_excluded(patterns: Iterable[Union[str, re.Pattern]], name: str) -> bool:
    return any(re.search(p, name) for p in patterns)


class NpmPlugin:
    """Emits {"npm": {name: NpmPackageInfo}} for each package.json.

    Published data comes from `npm info`; unpublished or private packages fall
    back to what package.json says.
    """

    def __init__(
        self,
        exclude_names: Sequence[Union[str, re.Pattern]] = (),
        exclude_private: bool = False,
        lookup: Optional[Lookup] = None,
        ):
        self.exclude_names = tuple(exclude_names)
        self.exclude_private = exclude_private
        self.lookup = lookup or npm_info

    def compile(self, files: Sequence[File], compiler: Compiler) -> dict[str, Any]:
        packages = [self.parse_package(f, compiler) for f in files]
        kept = [
            p for p in packages
            if not _is_excluded(self.exclude_names, p.name) and not (self.exclude_private and p.private)
        ]
        return {"npm": compiler.objectify(kept, lambda p: p.name)}

    def parse_package(self, file: File, compiler: Compiler) -> NpmPackageInfo:
        source_path = compiler.relative_path(file.path)
        try:
            pkg = json.loads(read_source(file))
        except json.JSONDecodeError as e:
            raise PluginError(file.path, e) from e
        if not isinstance(pkg, dict) or not pkg.get("name"):
            raise PluginError(file.path, ValueError("package.json has no `name`"))

        data = self.lookup(pkg["name"])
        if "error" in data:
            logger.info("npm info failed for %s; using package.json data", pkg["name"])
            return NpmPackageInfo(
                name=pkg["name"],
                description=pkg.get("description"),
                version=pkg.get("version"),
                private=pkg.get("private") is True,
                published=False,
                source_path=source_path,
                versions=[pkg["version"]] if pkg.get("version") else [],
            )

        dist_tags = data.get("dist-tags") or {}
        versions = data.get("versions") or []
        if isinstance(versions, str):
            versions = [versions]
        return NpmPackageInfo(
            name=data.get("name", pkg["name"]),
            description=data.get("description"),
            version=pkg.get("version"),
            latest_version=dist_tags.get("latest"),
            next_version=dist_tags.get("next"),
            private=False,
            published=True,
            source_path=source_path,
            versions=versions,
        )
