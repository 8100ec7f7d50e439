"""Main entry point when executing newscache as a package.

This allows running the package using python -m newscache.
"""

from newscache.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
