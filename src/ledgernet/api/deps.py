from fastapi import Request

from ..builder import Builder
from ..exceptions import LedgerNetError


def get_builder(request: Request) -> Builder:
    builder = getattr(request.app.state, "builder", None)
    if builder is None:
        raise LedgerNetError("No build is attached to this server.")
    return builder
