"""
LedgerNet Build Context

This module contains the BuildContext data class, which holds all state
owned by one build. It uses Protocol types to avoid circular dependencies.
"""

import threading
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

from ..protocols import ContainerEngine


class BuildContext(BaseModel):
    """
    Holds the state owned by exactly one Builder for one build.

    The context is immutable; stages derive updated copies with
    `model_copy(update=...)`. Copies share the same `pull_lock`.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    labels: Dict[str, str]
    engine: ContainerEngine
    tmp_dir: Path
    network: Optional[Any] = None
    pull_lock: Any = Field(default_factory=threading.Lock)
