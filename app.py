import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from backend import redis_backend
from constants import CORS_ORIGINS
from realtime.registry import SessionRegistry
from realtime.relay import RelayEngine
from routers.documents import documents_router
from routers.schedule import schedule_router
from routers.users import users_router
from logging_config import get_logger, setup_logging

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await redis_backend.ping()
    yield
    rooms = app.state.session_registry.rooms()
    if rooms:
        logger.info(f"Shutting down with {len(rooms)} open document room(s)")
    await redis_backend.close()


app = FastAPI(title="PrepInTech API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One registry per process; rooms only know about sockets connected here
app.state.session_registry = SessionRegistry()
app.state.relay_engine = RelayEngine(store=redis_backend, registry=app.state.session_registry)

app.include_router(users_router)
app.include_router(schedule_router)
app.include_router(documents_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms")
    return response


@app.get("/", response_class=HTMLResponse)
async def root():
    return "<h1>PrepInTech API is live!</h1>"


logger.info("FastAPI application initialized")
