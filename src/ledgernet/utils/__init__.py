"""
LedgerNet Utils Module

- logger: Logging setup and configuration
- merge: Deep merge for dictionaries and flag rendering

Usage:
    from ledgernet.utils import setup_logger, deep_merge
"""

from .logger import setup_logger, parse_module_levels, normalize_module_name
from .merge import deep_merge, render_flags

__all__ = [
    'setup_logger',
    'parse_module_levels',
    'normalize_module_name',
    'deep_merge',
    'render_flags',
]
