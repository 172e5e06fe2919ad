"""Entry point for `python -m lnprune`."""

from lnprune.cli.commands import app

if __name__ == "__main__":
    app()
