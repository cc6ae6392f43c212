"""Multi-tenant CRM core: duplicate detection and merge."""

__version__ = "0.1.0"
