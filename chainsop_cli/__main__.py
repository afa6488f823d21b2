"""
Entrypoint for running the CLI as a module.

Usage:
    python -m chainsop_cli [OPTIONS] COMMAND [ARGS]...
    chainsop [OPTIONS] COMMAND [ARGS]...  (after pip install)
"""

from chainsop_cli.cli import cli

if __name__ == "__main__":
    cli()
