"""
Test fixtures for the provider

This package contains fixtures used for testing:
- Handler sources (handlers/*.py) used as __provider values
"""

import os
from pathlib import Path

# Path to fixtures directory
FIXTURES_DIR = os.path.dirname(__file__)
HANDLERS_DIR = os.path.join(FIXTURES_DIR, 'handlers')


def handler_source(name: str) -> str:
    """Read a handler fixture's source (e.g., 'echo')"""
    return Path(HANDLERS_DIR, f'{name}.py').read_text()
