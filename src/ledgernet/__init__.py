"""
LedgerNet Framework

Provisions ephemeral permissioned ledger test networks on a local Docker
engine: one labelled network, a tx manager and a ledger node per node.

Main modules:
- builder: Provisioning pipeline, address leasing, containers, teardown
- engine: Container engine adapter (python-on-whales)
- bootstrap: Node identities and genesis
- config: Build file loading and validation
- datacls: Type-safe data classes and models
- api: Read-only query API over a running build
- utils: Utility functions

Quick start example:
```python
import asyncio
from ledgernet import Builder, Config, WhalesEngine

builder = Builder(Config("network.yml"), WhalesEngine())
asyncio.run(builder.build())
...
asyncio.run(builder.destroy())
```
"""

__version__ = "0.3.0"

from .protocols import ContainerEngine, BootstrapProtocol
from .config import Config, ConfigModel
from .builder import Builder, BuildState
from .engine import WhalesEngine
from .bootstrap import Bootstrapper
from .exceptions import (
    LedgerNetError,
    ConfigError,
    EngineError,
    ResourceExhaustion,
    AggregateError,
    DestroyError,
)

__all__ = [
    # Version
    '__version__',
    # Protocols
    'ContainerEngine',
    'BootstrapProtocol',
    # Config
    'Config',
    'ConfigModel',
    # Builder
    'Builder',
    'BuildState',
    'WhalesEngine',
    'Bootstrapper',
    # Exceptions
    'LedgerNetError',
    'ConfigError',
    'EngineError',
    'ResourceExhaustion',
    'AggregateError',
    'DestroyError',
]
