"""
Records exchanged with the container engine.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Tuple


class NetworkRecord(BaseModel):
    id: str
    name: str
    subnet: Optional[str] = None
    gateway: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)


class ContainerRecord(BaseModel):
    id: str
    name: str = ""
    status: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)


class ContainerSpec(BaseModel):
    """
    Everything the engine needs to create one container.

    `volumes` are `(host_path, container_path)` bind mounts.
    """
    image: str
    name: Optional[str] = None
    hostname: Optional[str] = None
    entrypoint: Optional[str] = None
    command: List[str] = Field(default_factory=list)
    workdir: Optional[str] = None
    envs: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    volumes: List[Tuple[str, str]] = Field(default_factory=list)
    network: Optional[str] = None
    ip: Optional[str] = None
