"""fencecall CLI entry point."""

from fencecall.cli import app

if __name__ == "__main__":
    app()
