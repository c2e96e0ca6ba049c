from .engine import NetworkRecord, ContainerRecord, ContainerSpec
from .artifacts import DefaultAccount, NodeIdentity, GenesisDoc, TxManagerKeys, WorkResult
from .contexts import BuildContext
from .messages import ContainerView, NodeResponse, NodesResponse, ErrorResponse

__all__ = [
    'NetworkRecord',
    'ContainerRecord',
    'ContainerSpec',
    'DefaultAccount',
    'NodeIdentity',
    'GenesisDoc',
    'TxManagerKeys',
    'WorkResult',
    'BuildContext',
    'ContainerView',
    'NodeResponse',
    'NodesResponse',
    'ErrorResponse',
]
