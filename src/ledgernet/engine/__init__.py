"""
LedgerNet Engine Module

- WhalesEngine: ContainerEngine implemented with python-on-whales
"""

from .whales import WhalesEngine, label_filters

__all__ = [
    'WhalesEngine',
    'label_filters',
]
