"""Entry point for ``python -m usage_pace``."""

from usage_pace.cli.commands import app

if __name__ == "__main__":
    app()
