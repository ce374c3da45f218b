#!/usr/bin/env python3
"""
Main entry point for rushbuy when running from a checkout

    python run.py --goods 2567304:2,3133851 --rush --order
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from rushbuy.cli import main

if __name__ == "__main__":
    sys.exit(main())
