"""Error types for Tessera.

Per-document failures (a broken reference, an unreadable page) are recovered by the
build and reported as PageResult values. Only setup failures (BuildError, ConfigError)
stop a run, and they are raised before any page is compiled.
"""

from __future__ import annotations

from pathlib import Path


class TesseraError(Exception):
    """Base class for all Tessera errors."""


class StorageError(TesseraError):
    """A source document could not be read or an output file could not be written.

    Attributes:
        path: Path that failed.
        message: Human-readable error message.
    """

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class DocumentNotFoundError(StorageError):
    """A document does not exist in storage."""

    def __init__(self, path: Path):
        super().__init__(path, "no such file")


class DocumentParseError(TesseraError):
    """Source text could not be turned into an HTML tree.

    Attributes:
        path: Document that failed to parse, when known.
        message: Parser message.
    """

    def __init__(self, path: Path | None, message: str):
        self.path = path
        self.message = message
        where = str(path) if path is not None else "<content>"
        super().__init__(f"{where}: {message}")


class ReferenceResolutionError(TesseraError):
    """An include reference points at a document that cannot be compiled.

    Attributes:
        reference: Reference text as written in the source.
        target: Resolved absolute path of the reference.
        source: Document containing the reference.
        reason: Why the target could not be used.
    """

    def __init__(
        self,
        reference: str,
        target: Path,
        source: Path | None,
        reason: str = "not found",
    ):
        self.reference = reference
        self.target = target
        self.source = source
        self.reason = reason
        where = f" in {source}" if source is not None else ""
        super().__init__(f"Unresolved reference '{reference}'{where}: {reason}")


class ConfigError(TesseraError):
    """Build configuration is missing or invalid."""


class BuildError(TesseraError):
    """Process-wide setup failed; no page was compiled."""
