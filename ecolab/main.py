# Run from project root: uvicorn ecolab.main:app --reload  (or: python -m ecolab.main)

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecolab.api.routes import router
from ecolab.core.config import CORS_ORIGINS, PORT
from ecolab.core.dependencies import get_air_quality_service
from ecolab.core.errors import ServiceUnavailableError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown: release the OpenAQ connection pool if a request ever built it
    if get_air_quality_service.cache_info().currsize:
        get_air_quality_service().close()
        logger.info("OpenAQ client closed")


app = FastAPI(title="EcoLab Air-Quality RAG Agent", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


@app.exception_handler(ServiceUnavailableError)
async def service_unavailable_handler(_request: Request, exc: ServiceUnavailableError) -> JSONResponse:
    # Raised while building collaborators in Depends (e.g. missing API key)
    return JSONResponse(status_code=503, content={"detail": exc.message})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
