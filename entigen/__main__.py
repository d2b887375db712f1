# File: entigen/__main__.py
"""
entigen: module entry point.

Allows running the generator directly via::

    python -m entigen -c entigen.yaml -m metadata.yaml -o ./entities

Delegates to ``entigen.cli.cli_main``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from entigen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
