"""
Custom exception hierarchy for casket.

Fatal conditions (config, catalog lookup, scan, schema) surface from these
types in main(); per-file and per-tier problems are handled closer to where
they happen.
"""


class CasketError(Exception):
    """Base exception for all casket errors."""
    pass


class ConfigError(CasketError):
    """Raised when the catalog configuration cannot be read or parsed."""
    pass


class CatalogNotFoundError(ConfigError):
    """Raised when the requested catalog name is not configured."""
    pass


class ScanError(CasketError):
    """Raised when the source root cannot be scanned."""
    pass


class DatabaseError(CasketError):
    """Raised when database operations fail."""
    pass


class FileOperationError(CasketError):
    """Raised when placing or copying a single file fails."""
    pass


class ConversionError(CasketError):
    """Raised when the external image converter does not produce output."""
    pass
