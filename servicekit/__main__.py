"""Entry point for ``python -m servicekit``."""

from servicekit.cli.commands import app

if __name__ == "__main__":
    app()
