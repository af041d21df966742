"""
Entry point for running host_discovery as a module.

This allows the package to be executed with: python -m host_discovery <subnet>
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
