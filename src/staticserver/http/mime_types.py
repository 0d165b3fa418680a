"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type values for the assets a single-page
application ships: documents, scripts, styles, images, fonts, media and
WebAssembly.

    index.html     → text/html; charset=utf-8
    app.js         → text/javascript; charset=utf-8
    logo.png       → image/png
    unknown.xyz    → application/octet-stream

Text types get a charset parameter; binary types do not.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Documents and code
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",     # Source maps
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # Media
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Other
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are still text
_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/manifest+json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """True for text/* and the text-based application types."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
