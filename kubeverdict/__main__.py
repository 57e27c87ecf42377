"""Entry point for `python -m kubeverdict`.

Usage:
    python -m kubeverdict run --duration 10m
    uv run python -m kubeverdict plugins
"""

from __future__ import annotations

from kubeverdict.cli import cli

cli(prog_name="kubeverdict")
