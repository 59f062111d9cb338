#!/usr/bin/env python3
"""
Entry point for the Treehole exporter.

Runs the ``treehole-export`` CLI without installing the package.

Usage:
    python run_export.py export 7654321 --cookie-file cookies.txt

What this does:
    1. Fetches the post and every page of its comments
    2. Builds the participant list
    3. Writes output/PKU树洞#{pid}-{timestamp}.json for the renderer
"""

import sys
from pathlib import Path

# Add src to path to import the package
# This allows running the script from repository root
sys.path.insert(0, str(Path(__file__).parent / "src"))

from treehole_exporter.cli import main


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nExport interrupted by user")
        sys.exit(130)
