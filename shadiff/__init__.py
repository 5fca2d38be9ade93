"""shadiff — package a project as an installable component registry item."""

__version__ = "1.3.0"
