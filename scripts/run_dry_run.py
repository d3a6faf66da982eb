#!/usr/bin/env python3
"""
Dry Run - Auto-fill a fiscal-year snapshot without touching the calendar

Usage:
  python scripts/run_dry_run.py --snapshot fy27_snapshot.json --swap

Outputs to outputs/ directory.
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autofill.dry_run import main

if __name__ == "__main__":
    main()
