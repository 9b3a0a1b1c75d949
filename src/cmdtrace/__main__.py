"""Allow ``python -m cmdtrace``."""

from cmdtrace.cli import app

if __name__ == "__main__":
    app()
