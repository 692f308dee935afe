"""Exception hierarchy shared by the loader, the generator and the CLI."""

from __future__ import annotations


class Go2ProtoError(Exception):
    """Base class for every error that ends a go2proto run."""


class ConfigError(Go2ProtoError):
    """Raised for unusable command-line options (missing paths, bad output folder)."""


class CollectionError(Go2ProtoError):
    """Raised when one or more Go packages cannot be loaded.

    The message bundles the errors of every failing package.
    """


class NoMessagesError(Go2ProtoError):
    """Raised when no message survives loading and filtering."""


class OutputError(Go2ProtoError):
    """Raised when the .proto output file cannot be created or written."""
