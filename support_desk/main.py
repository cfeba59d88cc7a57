import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from support_desk.api.router import api_router
from support_desk.core.config import get_settings
from support_desk.core.db import (
    close_engine,
    create_schema,
    create_session_factory,
    init_engine,
)
from support_desk.core.logging import configure_logging, set_request_id
from support_desk.infra.db.repositories import AgentRepository
from support_desk.infra.realtime import InMemoryRealtimeHub

settings = get_settings()
settings.validate_runtime_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize infrastructure
    engine = init_engine(settings)
    if settings.db_auto_create:
        await create_schema(engine)
    session_factory = create_session_factory(engine)
    app.state.db_engine = engine
    app.state.session_factory = session_factory
    app.state.realtime_hub = InMemoryRealtimeHub(
        send_timeout=settings.realtime_send_timeout_seconds
    )

    # No socket survives a restart, so nobody is online yet.
    async with session_factory() as session:
        agents = AgentRepository(session)
        await agents.set_all_offline()
        await session.commit()

    logger.info("Support desk started (env=%s)", settings.app_env)
    yield

    # Graceful shutdown
    await close_engine(engine)
    logger.info("Support desk stopped")


app = FastAPI(
    title="Support Desk Claim Coordinator API",
    version="0.1.0",
    docs_url="/docs" if settings.app_env != "production" else None,
    redoc_url="/redoc" if settings.app_env != "production" else None,
    lifespan=lifespan,
)

if settings.trusted_hosts:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.trusted_hosts,
    )

if settings.force_https:
    app.add_middleware(HTTPSRedirectMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-Id"],
)


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid4().hex
    set_request_id(request_id)
    response = await call_next(request)
    response.headers.setdefault("X-Request-Id", request_id)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    if settings.force_https:
        response.headers.setdefault(
            "Strict-Transport-Security",
            "max-age=31536000; includeSubDomains",
        )
    return response


app.include_router(api_router, prefix="/api")


@app.get("/", tags=["meta"])
async def root() -> dict[str, str]:
    return {"service": "support-desk", "status": "ok"}
