"""
Top-level package for commit_inference.

This package infers Conventional Commit messages from a structured diff.
The command line entry point lives in ``commit_inference.cli``.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
