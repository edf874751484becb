import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from chaincv.ai.types import ModelAdapter
from chaincv.api.v1.health import router as health_router
from chaincv.api.v1.resumes import router as resumes_router
from chaincv.core.config import Settings, load_settings
from chaincv.core.lifespan import lifespan
from chaincv.core.rate_limit import configure_rate_limit
from chaincv.services.pipeline import build_pipeline


def create_app(settings: Settings | None = None, *, model: ModelAdapter | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn)

    app = FastAPI(title="ChainCV Resume Analysis API", version="0.1.0", lifespan=lifespan)
    app.state.pipeline = build_pipeline(settings, model=model)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.limiter = configure_rate_limit(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.get("/", include_in_schema=False)
    async def root():
        return {"ok": True, "msg": "ChainCV backend running"}

    app.include_router(health_router, prefix="/v1", tags=["Health"])
    app.include_router(resumes_router, prefix="/v1", tags=["Resumes"])
    return app


app = create_app()
