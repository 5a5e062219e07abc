from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlmodel import Session
import time
import structlog

from grevocab.auth import get_user_from_token
from grevocab.db import engine, init_db
from grevocab.routers import auth as auth_router
from grevocab.routers import words as words_router
from grevocab.routers import extract as extract_router
from grevocab.routers import study as study_router
from grevocab.notifications import manager
from grevocab.services.logging import configure_logging, log_api_request
from grevocab.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from grevocab.middleware.rate_limit import limiter

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="GRE Vocab",
    description="Personal GRE vocabulary builder: import, extract and study words",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Add middleware for request logging and metrics
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()

    log_api_request(request)

    try:
        response = await call_next(request)
    except Exception as e:
        log_api_request(request, error=e)
        raise

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Use the route template so ids in paths do not explode label cardinality
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=endpoint
    ).observe(process_time)

    response.response_time = process_time
    log_api_request(request, response)

    return response


# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


# ----------------- Startup -----------------
@app.on_event("startup")
def on_startup():
    init_db()


# ----------------- Routers -----------------
app.include_router(auth_router.router)
app.include_router(words_router.router)
app.include_router(extract_router.router)
app.include_router(study_router.router)


# ----------------- WebSocket -----------------
@app.websocket("/ws/words")
async def words_subscription(websocket: WebSocket):
    """Live word-list changes and study-session updates for the token's owner"""
    with Session(engine) as session:
        user = get_user_from_token(websocket.query_params.get("token"), session)
    if user is None:
        await websocket.close(code=1008)
        return
    user_id = str(user.id)
    await manager.connect(user_id, websocket)
    try:
        while True:
            # Keep connection alive; ignore incoming messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(user_id, websocket)
