"""Automatic silence trimming and transcript-driven editing for spoken-word video."""

__version__ = "0.1.0"
