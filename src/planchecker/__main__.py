"""Allow running as ``python -m planchecker``."""

from planchecker.cli.main import app

app()
