"""
=============================================================================
FALLBACK FILESYSTEM
=============================================================================

Decides which file on disk answers a request path, applying a fallback
rule when the exact path does not exist.

=============================================================================
WHY A FALLBACK?
=============================================================================

Single-page applications route on the client. A deep link like
/app/users/42 has no file behind it; the browser needs the shell document
(index.html) and the app's router takes it from there.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RESOLUTION ORDER                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. Exact file               /app/main.js        → app/main.js       │
    │  2. Directory index          /app/               → app/index.html    │
    │  3. Fallback rule                                                    │
    │     Absolute("/index.html")  /a/b/c              → index.html        │
    │     Relative("index.html")   /app/sub/missing    → app/sub/index.html│
    │                              /app/other/missing  → app/index.html    │
    │  4. Nothing                                      → NotFound (404)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The relative rule walks UP from the directory containing the requested
path, one parent at a time, and stops at the base directory. The nearest
match wins, so each sub-application keeps its own shell.

=============================================================================
SAFETY
=============================================================================

Nothing resolves outside the base directory: paths with ".." segments are
refused, and every candidate is resolved (following symlinks) and checked
against the root before it is returned.

Results are never cached; each request sees the filesystem as it is now.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError


logger = logging.getLogger(__name__)


class FallbackKind(Enum):
    ABSOLUTE = "absolute"   # one fixed substitute asset
    RELATIVE = "relative"   # file name searched up the directory tree


@dataclass(frozen=True)
class FallbackRule:
    """
    Policy for the asset served when the exact path does not exist.

        FallbackRule.parse("/index.html")  → Absolute("/index.html")
        FallbackRule.parse("index.html")   → Relative("index.html")
        FallbackRule.parse("")             → None (fallback disabled)
    """

    kind: FallbackKind
    target: str

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FallbackRule"]:
        if not value:
            return None

        segments = value.replace("\\", "/").split("/")
        if ".." in segments:
            raise ConfigurationError(f"Fallback must stay inside the base directory: {value!r}")

        if value.startswith("/"):
            if value == "/":
                raise ConfigurationError("Absolute fallback must name a file, got '/'")
            return cls(FallbackKind.ABSOLUTE, value)
        return cls(FallbackKind.RELATIVE, value)

    @property
    def is_absolute(self) -> bool:
        return self.kind is FallbackKind.ABSOLUTE

    @property
    def template_path(self) -> str:
        """
        Logical request path of the shell document.

        For a relative rule this is the root-level copy ("index.html" →
        "/index.html"), the one the template rewrite works on.
        """
        if self.is_absolute:
            return self.target
        return "/" + self.target.lstrip("/")


@dataclass(frozen=True)
class ResolvedAsset:
    """
    Outcome of resolving a request path.

    path is None for NotFound. via_fallback tells the caller whether the
    fallback rule produced the match (logged at DEBUG).
    """

    path: Optional[Path] = None
    via_fallback: bool = False

    @property
    def found(self) -> bool:
        return self.path is not None


NOT_FOUND = ResolvedAsset()


class FallbackFileSystem:
    """
    Resolves logical request paths against a base directory tree.

        fs = FallbackFileSystem("/srv/http", FallbackRule.parse("index.html"))
        asset = fs.open("/app/users/42")
        if asset.found:
            serve(asset.path)

    Only stat() calls are made while searching; no file is opened.
    Instances hold no mutable state and are shared by all worker threads.
    """

    def __init__(
        self,
        root: str,
        rule: Optional[FallbackRule] = None,
        index_file: str = "index.html",
    ):
        self.root = Path(root).resolve()
        self.rule = rule
        self.index_file = index_file

        if not self.root.is_dir():
            raise ConfigurationError(f"Base directory does not exist: {root}")

    def open(self, request_path: str) -> ResolvedAsset:
        """Resolve `request_path` to a concrete file, or NOT_FOUND."""
        parts = self._split(request_path)
        if parts is None:
            logger.warning(f"Refusing path outside base directory: {request_path!r}")
            return NOT_FOUND

        direct = self._lookup(parts)
        if direct is not None:
            return ResolvedAsset(direct)

        if self.rule is None:
            return NOT_FOUND

        if self.rule.is_absolute:
            target = self._file_at(self._split(self.rule.target) or [])
            if target is None:
                return NOT_FOUND
            logger.debug(f"{request_path} -> fallback {self.rule.target}")
            return ResolvedAsset(target, via_fallback=True)

        return self._find_upwards(parts, self.rule.target)

    def _split(self, path: str) -> Optional[List[str]]:
        """Logical path → segments; None when it tries to climb out."""
        segments = [
            segment for segment in path.replace("\\", "/").split("/")
            if segment and segment != "."
        ]
        if ".." in segments:
            return None
        return segments

    def _contained(self, candidate: Path) -> Optional[Path]:
        """Resolve symlinks and make sure we are still under root."""
        try:
            resolved = candidate.resolve()
            resolved.relative_to(self.root)
        except (OSError, RuntimeError, ValueError):
            # Symlink loops, over-long names and escapes all count as absent
            return None
        return resolved

    def _file_at(self, parts: List[str]) -> Optional[Path]:
        path = self._contained(self.root.joinpath(*parts))
        if path is not None and os.path.isfile(path):
            return path
        return None

    def _is_dir(self, parts: List[str]) -> bool:
        path = self._contained(self.root.joinpath(*parts))
        return path is not None and os.path.isdir(path)

    def _lookup(self, parts: List[str]) -> Optional[Path]:
        """Exact file, or the index file of an exact directory."""
        exact = self._file_at(parts)
        if exact is not None:
            return exact
        if self._is_dir(parts):
            return self._file_at(parts + [self.index_file])
        return None

    def _find_upwards(self, parts: List[str], name: str) -> ResolvedAsset:
        """
        Search `name` from the requested path's directory up to root.

        The loop runs at most len(directory) + 1 times; depth 0 is the base
        directory itself and ends the search.
        """
        directory = parts if self._is_dir(parts) else parts[:-1]
        name_parts = self._split(name) or []

        for depth in range(len(directory), -1, -1):
            candidate = self._file_at(directory[:depth] + name_parts)
            if candidate is not None:
                logger.debug(f"/{'/'.join(parts)} -> fallback {candidate}")
                return ResolvedAsset(candidate, via_fallback=True)

        return NOT_FOUND
