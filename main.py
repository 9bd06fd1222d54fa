#!/usr/bin/env python3
"""
Main entry point for Regulation Search.

This is the primary CLI interface.
"""

import sys

from regulation_search.pipeline.cli import main

if __name__ == "__main__":
    sys.exit(main())
