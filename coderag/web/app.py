"""Main FastAPI application."""

import logging

from fastapi import FastAPI, APIRouter, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..errors import CodeRagError, IndexLockedError, IndexNotFoundError, ReviewInputError
from ..storage import close_local_clients
from .routes import indexing, search

logger = logging.getLogger(__name__)

app = FastAPI(title="coderag")

# Setup CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router = APIRouter(prefix="/api")

api_router.include_router(indexing.router)
api_router.include_router(search.router)

app.include_router(api_router)


@app.on_event("shutdown")
def _close_clients():
    close_local_clients()


@app.exception_handler(CodeRagError)
async def _coderag_error(request: Request, exc: CodeRagError):
    if isinstance(exc, IndexNotFoundError):
        status = 404
    elif isinstance(exc, ReviewInputError):
        status = 400
    elif isinstance(exc, IndexLockedError):
        logger.warning(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)}, headers={"Retry-After": "1"})
    else:
        logger.error(f"{request.url.path} failed: {exc}")
        status = 502
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def _value_error(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})
