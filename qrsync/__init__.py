"""Attach generated QR codes to Notion database records."""

__version__ = "0.1.0"
