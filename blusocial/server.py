"""
HTTP entry point for the BluSocial matching service.

Routes:
  - GET /health      liveness probe
  - GET /            service info
  - POST /run-graph  run the discovery, auto_match or social graph
  - GET /docs, /openapi.json (FastAPI)
"""

from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Request, status, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Dict, Any, Optional, Annotated
import asyncio
import time

from blusocial.config import config, validate_config
from blusocial.utils.logging_config import logger, setup_logging
from blusocial.graphs.auto_match import create_auto_match_graph
from blusocial.graphs.discovery import create_discovery_graph
from blusocial.graphs.social import create_social_graph

setup_logging(debug=config.DEBUG, log_file=config.LOG_FILE or None)

# Refuse to start on broken configuration.
try:
    for key, value in validate_config().items():
        logger.info(f"config {key}: {value}")
except ValueError as e:
    logger.error(f"❌ Configuration error: {e}")
    exit(1)

VALID_GRAPHS = ("discovery", "auto_match", "social")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "🚀 Matching service up: project=%s radius=%skm chunk=%s timeout=%ss",
        config.FIREBASE_PROJECT_ID,
        config.DEFAULT_DISCOVERY_RADIUS_KM,
        config.BATCH_CHUNK_SIZE,
        config.GRAPH_TIMEOUT,
    )
    try:
        yield
    finally:
        logger.info("🛑 Matching service shutting down")


app = FastAPI(
    title="BluSocial Matching Service",
    description="Proximity discovery, match suggestions and friend graph operations",
    version="1.0.0",
    lifespan=lifespan,
)

# The Next.js app calls us from its dev servers and its public origin.
origins = ["http://localhost:9002", "http://localhost:3000"]
if config.APP_BASE_URL:
    origins.append(config.APP_BASE_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class GraphRequest(BaseModel):
    """Body of POST /run-graph: a graph name and its input state."""
    graph: str
    input: Dict[str, Any]


class GraphResponse(BaseModel):
    """Final graph state wrapped with the graph name and an error, if any."""
    success: bool
    graph: str
    data: Dict[str, Any] = {}
    error: Optional[str] = None


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


async def require_service_token(
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """Check the bearer token when SERVICE_TOKEN is configured."""
    if not config.SERVICE_TOKEN:
        return
    if authorization != f"Bearer {config.SERVICE_TOKEN}":
        logger.warning("Unauthorized request: invalid or missing token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def build_graph(request: GraphRequest):
    """Compile the requested graph, rejecting unknown names and bad input."""
    if request.graph == "discovery":
        return create_discovery_graph()

    if request.graph == "auto_match":
        return create_auto_match_graph()

    if request.graph == "social":
        if not request.input.get("action"):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="social graph requires action in input",
            )
        return create_social_graph()

    logger.error(f"Unknown graph: {request.graph}")
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Unknown graph: {request.graph}. Valid options: {', '.join(VALID_GRAPHS)}",
    )


@app.get("/health", tags=["System"])
async def health_check() -> Dict[str, str]:
    return {"status": "healthy"}


@app.get("/", tags=["System"])
async def root() -> Dict[str, str]:
    return {
        "service": "BluSocial Matching Service",
        "version": "1.0.0",
        "graphs": ", ".join(VALID_GRAPHS),
        "docs": "/docs",
    }


@app.post(
    "/run-graph",
    response_model=GraphResponse,
    tags=["Graphs"],
    dependencies=[Depends(require_service_token)],
)
async def run_graph(request: GraphRequest) -> GraphResponse:
    """
    Run one graph to completion within GRAPH_TIMEOUT.

    Graph-level problems (missing profile, store outage) come back as
    success=True with the details in data.response_metadata; only transport
    failures turn into HTTP errors.

    Raises:
        HTTPException: 400 for an unknown graph or missing social action,
            504 on timeout, 500 if the graph itself raises.
    """
    logger.info(f"run-graph {request.graph} keys={list(request.input.keys())}")
    graph = build_graph(request)

    start_time = time.time()
    try:
        result = await asyncio.wait_for(
            graph.ainvoke(request.input), timeout=config.GRAPH_TIMEOUT
        )
    except TimeoutError:
        logger.error(f"⏱️ {request.graph} graph timed out after {time.time() - start_time:.2f}s")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Graph execution timed out after {config.GRAPH_TIMEOUT}s",
        )
    except Exception as e:
        logger.exception(f"❌ {request.graph} graph failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Graph execution failed: {e}",
        )

    logger.info(f"✅ {request.graph} graph completed in {time.time() - start_time:.2f}s")
    return GraphResponse(success=True, graph=request.graph, data=result)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "status_code": exc.status_code},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Last resort; the exception text is logged, never returned."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error", "status_code": 500},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="debug" if config.DEBUG else "info",
    )
