from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..builder import Builder
from ..datacls import ErrorResponse
from ..exceptions import LedgerNetError
from .endpoints import nodes


def create_app(builder: Builder) -> FastAPI:
    """Read-only query API over the node set of one build."""
    app = FastAPI(title=f"LedgerNet API - {builder.name}")
    app.state.builder = builder

    # Exception Handler
    @app.exception_handler(LedgerNetError)
    async def ledgernet_exception_handler(request: Request, exc: LedgerNetError):
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=exc.__class__.__name__, message=str(exc)).model_dump(),
        )

    # Router
    app.include_router(nodes.router, prefix="/v1", tags=["Nodes"])
    return app
