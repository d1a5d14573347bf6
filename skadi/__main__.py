"""
Allow running SKADI as a module: python -m skadi
"""

import asyncio
import sys

from skadi.cli import main

if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
