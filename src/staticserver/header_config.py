"""
=============================================================================
HEADER CONFIGURATION
=============================================================================

Optional per-path response headers, loaded once from a JSON file
(default /config/headerConfig.json):

    {
      "configs": [
        {
          "path": "*",
          "fileExtension": "html",
          "headers": [
            {"key": "Cache-Control", "value": "public, max-age=0, must-revalidate"}
          ]
        },
        {
          "path": "/assets/",
          "fileExtension": "*",
          "headers": [
            {"key": "Cache-Control", "value": "public, max-age=31536000, immutable"}
          ]
        }
      ]
    }

A rule applies when its path is "*" or a prefix of the request path AND
its fileExtension is "*" or the request path's extension (without dot).
Every matching rule contributes; later rules win on the same header.

A missing or broken file is not fatal: load() returns None and the
custom-header stage is left out of the pipeline.

=============================================================================
"""

import json
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union


logger = logging.getLogger(__name__)

Header = Tuple[str, str]


@dataclass(frozen=True)
class HeaderRule:
    path: str
    file_extension: str
    headers: Tuple[Header, ...] = field(default_factory=tuple)

    def matches(self, request_path: str) -> bool:
        path_match = self.path == "*" or request_path.startswith(self.path)
        extension = posixpath.splitext(request_path)[1]
        file_match = self.file_extension == "*" or extension == "." + self.file_extension
        return path_match and file_match

    @classmethod
    def from_dict(cls, data: dict) -> "HeaderRule":
        """Raises KeyError/TypeError/AttributeError on malformed entries."""
        headers = tuple(
            (str(entry["key"]), str(entry["value"])) for entry in data["headers"]
        )
        return cls(
            path=str(data["path"]),
            file_extension=str(data["fileExtension"]).lstrip("."),
            headers=headers,
        )


@dataclass(frozen=True)
class HeaderConfig:
    """Read-only table of header rules; safe to share between threads."""

    rules: Tuple[HeaderRule, ...]

    def lookup(self, request_path: str) -> List[Header]:
        """All (name, value) pairs that apply to `request_path`, in rule order."""
        headers: List[Header] = []
        for rule in self.rules:
            if rule.matches(request_path):
                headers.extend(rule.headers)
        return headers

    @classmethod
    def from_data(cls, data: Any) -> "HeaderConfig":
        return cls(rules=tuple(HeaderRule.from_dict(entry) for entry in data["configs"]))

    @classmethod
    def load(cls, path: Union[str, Path, None]) -> Optional["HeaderConfig"]:
        """
        Load rules from `path`; None when there is nothing usable.
        """
        if not path:
            return None

        config_path = Path(path)
        if not config_path.is_file():
            logger.debug(f"No header config at {config_path}")
            return None

        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            config = cls.from_data(data)
        except OSError as e:
            logger.warning(f"Can't read header config file {config_path}: {e}")
            return None
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Invalid header config file {config_path}: {e}")
            return None

        if not config.rules:
            logger.info("No rules found in header config file.")
            return None

        logger.info(f"Found header config file with {len(config.rules)} rule(s):")
        for rule in config.rules:
            names = ", ".join(name for name, _ in rule.headers)
            logger.info(f"  path={rule.path} fileExtension={rule.file_extension} headers=[{names}]")
        return config
