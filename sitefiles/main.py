# sitefiles/main.py
"""Main entry point for the sitefiles CLI application."""

from sitefiles.cli.interface import main_cli


def entrypoint():
    """Function to be called by the script defined in pyproject.toml."""
    main_cli(prog_name="sitefiles")

if __name__ == '__main__':
    entrypoint()
