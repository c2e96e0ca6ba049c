from pydantic import BaseModel
from typing import List, Optional


class ContainerView(BaseModel):
    role: str
    image: str
    ip: str
    container_id: Optional[str] = None


class NodeResponse(BaseModel):
    index: int
    enode: Optional[str] = None
    ledger: Optional[ContainerView] = None
    tx_manager: Optional[ContainerView] = None


class NodesResponse(BaseModel):
    name: str
    state: str
    nodes: List[NodeResponse]


class ErrorResponse(BaseModel):
    error: str
    message: str
