import json
from pathlib import Path
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class DefaultAccount(BaseModel):
    """Pre-funded account of one ledger node, unlocked at start."""
    address: str
    keystore_file: Path
    password_file: Path


class NodeIdentity(BaseModel):
    """
    Identity of one ledger node, produced before any container exists.
    """
    index: int
    ip: str
    node_key: str
    node_id: str
    enode: str
    data_dir: Path
    account: Optional[DefaultAccount] = None


class GenesisDoc(BaseModel):
    """Genesis description shared by every node of one network."""
    consensus: str
    content: Dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.content, indent=2, sort_keys=True)


class TxManagerKeys(BaseModel):
    public: str
    private: str


class WorkResult(BaseModel):
    """Outcome of one unit of a parallel run."""
    index: int
    error: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.error is None
