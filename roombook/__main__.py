"""
Convenience entry point for running roombook as a module.

Usage: python -m roombook [command] [options]
"""

from roombook.cli.app import app

if __name__ == "__main__":
    app()
