"""
=============================================================================
TEMPLATE REWRITER
=============================================================================

One-time startup pass over the shell document that injects runtime
configuration into it, so a single container image can be pointed at
different backends:

    docker run app --fallback /index.html apiUrl https://api.example.com

    index.html before:   window.config = {'apiUrl' : 'http://localhost'}
    index.html after:    window.config = {'apiUrl':'https://api.example.com'}

=============================================================================
RULES
=============================================================================

- Arguments come as a flat list and must pair up (key, value, key, ...).
- Each key rewrites every  'key' <spaces> : <spaces> '<anything>'  to
  'key':'value'. Keys are matched literally, values inserted literally.
- Pairs are applied last-to-first.
- The result is written back to disk, so a restart serves the same bytes
  without repeating the rewrite, and returned for serving from memory.
- Running the same substitutions again produces identical bytes.

Any failure stops startup; a half-rewritten shell document must never be
served.

=============================================================================
"""

import logging
import re
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from .errors import SubstitutionArgumentsError, TemplateReadError, TemplateWriteError


logger = logging.getLogger(__name__)

Substitution = Tuple[str, str]


def pair_substitutions(arguments: Sequence[str]) -> List[Substitution]:
    """
    ["apiUrl", "https://x", "env", "prod"] → [("apiUrl", "https://x"), ("env", "prod")]

    Raises:
        SubstitutionArgumentsError: odd number of arguments.
    """
    if len(arguments) % 2 != 0:
        raise SubstitutionArgumentsError(
            "Passing variables to be replaced on base file needs to be done by pair var value"
        )
    return [(arguments[i], arguments[i + 1]) for i in range(0, len(arguments), 2)]


class TemplateRewriter:
    """
    Applies quoted key/value substitutions to a template file.

    Works on bytes, so templates in any ASCII-compatible encoding survive
    untouched outside the rewritten pairs.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def substitute(self, content: bytes, substitutions: Sequence[Substitution]) -> bytes:
        """Apply substitutions in reverse declaration order."""
        for key, value in reversed(list(substitutions)):
            quoted_key = key.encode(self.encoding)
            pattern = re.compile(b"'" + re.escape(quoted_key) + b"' *: *'[^']*'")
            replacement = b"'" + quoted_key + b"':'" + value.encode(self.encoding) + b"'"
            # A callable keeps backslashes in the value literal
            content = pattern.sub(lambda _match: replacement, content)
        return content

    def rewrite(
        self,
        asset_path: Union[str, Path],
        substitutions: Sequence[Substitution],
    ) -> bytes:
        """
        Rewrite `asset_path` in place and return the new bytes.

        Raises:
            TemplateReadError: the file cannot be read.
            TemplateWriteError: the result cannot be written back.
        """
        path = Path(asset_path)

        try:
            original = path.read_bytes()
        except OSError as e:
            raise TemplateReadError(f"Unable to open file {path}: {e}") from e

        rewritten = self.substitute(original, substitutions)

        try:
            path.write_bytes(rewritten)
        except OSError as e:
            raise TemplateWriteError(f"Unable to write file {path}: {e}") from e

        if substitutions:
            logger.info(f"Applied {len(substitutions)} substitution(s) to {path}")
        return rewritten
