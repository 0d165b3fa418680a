"""
Request handlers: the file-serving terminal of the pipeline and the
/health endpoint that sits beside it.
"""

from .static import FileServingHandler
from .health import HealthHandler

__all__ = [
    "FileServingHandler",
    "HealthHandler",
]
