"""
mkctx - A tool for generating a single context document for LLM ingestion.

This package provides functionality to scan a directory tree, filter files
with simple comma-separated ignore patterns and built-in exclusions, and
write the surviving files as fenced markdown blocks to ``context.md``.
"""

__version__ = "0.1.0"
__author__ = "mkctx Team"
