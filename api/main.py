from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.middleware.logging import RequestLoggingMiddleware
from api.routers import command
from engine.command_engine import CommandEngine
from logging_config import setup_logging
from settings import SETTINGS
from tasks.conversation_reaper import ConversationReaper
from tools.customer_repository import JsonCustomerRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine: CommandEngine = app.state.engine
    if SETTINGS.seed_demo_customers and isinstance(engine.customers, JsonCustomerRepository):
        await engine.customers.seed_demo_data()
    reaper: ConversationReaper = app.state.reaper
    if SETTINGS.conversation_reaper_enabled:
        reaper.start()
    logger.info(
        "service_started",
        extra={
            "service": SETTINGS.service_name,
            "conversation_ttl_seconds": engine.conversations.ttl_seconds,
            "reaper_enabled": SETTINGS.conversation_reaper_enabled,
        },
    )
    try:
        yield
    finally:
        await reaper.stop()
        logger.info("service_stopped", extra={"service": SETTINGS.service_name})


def create_app(engine: CommandEngine | None = None) -> FastAPI:
    setup_logging()
    app = FastAPI(title="Inventory Command Service", version="0.1.0", lifespan=lifespan)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=SETTINGS.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.engine = engine or CommandEngine()
    app.state.reaper = ConversationReaper(app.state.engine.conversations)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
                "message": err.get("msg", "invalid"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"response": "Invalid request format.", "details": details})

    app.include_router(command.router)

    @app.get("/health")
    async def health():
        return {"ok": True, "service": SETTINGS.service_name}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=SETTINGS.host, port=SETTINGS.port, log_level=SETTINGS.log_level.lower())
