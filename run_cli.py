#!/usr/bin/env python3
"""
Quick start script for dexpi-bridge - CLI mode.

Runs the command-line interface from a source checkout without installing.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Run CLI
if __name__ == "__main__":
    from dexpi_bridge.converter.cli import main
    sys.exit(main())
