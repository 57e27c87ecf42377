"""kubeverdict command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubeverdict`` script).
"""

from kubeverdict.cli.main import cli

__all__ = ["cli"]
