"""
=============================================================================
STARTUP ERRORS
=============================================================================

Everything that can go wrong before the server accepts its first
connection. Each error carries the process exit code the CLI uses:

    ┌─────────────────────────────────┬──────┐
    │ SubstitutionArgumentsError      │  1   │  odd key/value argument list
    │ TemplateReadError               │  2   │  fallback template unreadable
    │ TemplateWriteError              │  3   │  rewritten template unwritable
    │ ConfigurationError (any other)  │  4   │  bad credentials, port, paths
    └─────────────────────────────────┴──────┘

Request-time problems never raise these; they become HTTP error responses.

=============================================================================
"""


class ConfigurationError(Exception):
    """Invalid startup configuration; the server must not start."""

    exit_code = 4


class SubstitutionArgumentsError(ConfigurationError):
    """Template substitutions must be given as key/value pairs."""

    exit_code = 1


class TemplateReadError(ConfigurationError):
    """The fallback template could not be read."""

    exit_code = 2


class TemplateWriteError(ConfigurationError):
    """The rewritten fallback template could not be written back."""

    exit_code = 3
