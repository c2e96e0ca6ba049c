"""
LedgerNet Builder Module

- Builder: Provisioning pipeline and label-driven teardown
- NetworkManager / Network: Build network and address leasing
- TxManager / LedgerNode: Per-node containers
- ContainerOptions: Container parameters
- run_in_parallel: Fan-out executor used by every stage

Usage:
    from ledgernet.builder import Builder
    from ledgernet.engine import WhalesEngine

    builder = Builder(Config("network.yml"), WhalesEngine())
    await builder.build()
    ...
    await builder.destroy()
"""

from .build import Builder, BuildState, NodeUnits
from .net import Network, NetworkManager
from .containers import ManagedContainer, TxManager, LedgerNode
from .configurable import Configurable, ContainerOptions
from .parallel import run_in_parallel

__all__ = [
    'Builder',
    'BuildState',
    'NodeUnits',
    'Network',
    'NetworkManager',
    'ManagedContainer',
    'TxManager',
    'LedgerNode',
    'Configurable',
    'ContainerOptions',
    'run_in_parallel',
]
