from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...builder import Builder, ManagedContainer, NodeUnits
from ...datacls import ContainerView, NodeResponse, NodesResponse
from ..deps import get_builder

router = APIRouter()


def _container_view(container: Optional[ManagedContainer]) -> Optional[ContainerView]:
    if container is None:
        return None
    return ContainerView(
        role=container.role.value,
        image=container.image,
        ip=container.ip,
        container_id=container.container_id,
    )


def _node_view(node: NodeUnits) -> NodeResponse:
    return NodeResponse(
        index=node.index,
        enode=node.identity.enode if node.identity else None,
        ledger=_container_view(node.ledger),
        tx_manager=_container_view(node.tx_manager),
    )


@router.get("/nodes", response_model=NodesResponse)
def get_nodes(builder: Builder = Depends(get_builder)):
    return NodesResponse(
        name=builder.name,
        state=builder.state.value,
        nodes=[_node_view(node) for node in builder.nodes],
    )


@router.get("/nodes/{idx}", response_model=NodeResponse)
def get_node(idx: int, builder: Builder = Depends(get_builder)):
    node = builder.node(idx)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node {idx} not found")
    return _node_view(node)
