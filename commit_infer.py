#!/usr/bin/env python
"""
Thin wrapper script to invoke the commit_inference CLI.

Running ``python commit_infer.py`` is equivalent to running the
``commit-infer`` console script installed via ``pyproject.toml``.
"""

from commit_inference.cli import main


if __name__ == "__main__":
    main(prog_name="commit-infer")
