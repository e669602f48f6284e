import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .config import Settings, get_settings
from .api.deps import AuthServices
from .api.routers import auth as auth_router
from .api.routers import health as health_router
from .api.routers import metrics as metrics_router
from .db import create_schema, make_engine, make_sessionmaker
from .errors.handlers import register_exception_handlers
from .middleware.origin_guard import OriginGuardMiddleware
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import setup_logging
from .observability.metrics import MetricsHTTPMiddleware
from .otp.ledger import InMemoryOtpLedger, OtpLedger, RedisOtpLedger
from .redis_client import make_redis
from .services.credentials import CredentialStore, SqlCredentialStore
from .services.notifier import Notifier, build_notifier
from .services.passwords import PasswordHasher
from .workers import otp_sweeper

log = logging.getLogger("otpgate.app")


def _build_ledger(app: FastAPI, settings: Settings) -> OtpLedger:
    if settings.OTP_BACKEND == "redis":
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL must be set when OTP_BACKEND=redis")
        app.state.redis = make_redis(settings.REDIS_URL)
        return RedisOtpLedger(app.state.redis)
    return InMemoryOtpLedger()


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[CredentialStore] = None,
    ledger: Optional[OtpLedger] = None,
    notifier: Optional[Notifier] = None,
    hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """Build the app. Collaborators not passed in are created from settings at startup."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        owned_ledger = None
        sweeper = None

        _store = store
        if _store is None:
            engine = make_engine(settings.DATABASE_URL)
            app.state.engine = engine
            if settings.ENV != "prod":
                await create_schema(engine)
            _store = SqlCredentialStore(make_sessionmaker(engine))

        _ledger = ledger
        if _ledger is None:
            _ledger = owned_ledger = _build_ledger(app, settings)

        app.state.services = AuthServices.wire(
            store=_store,
            hasher=hasher or PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
            ledger=_ledger,
            notifier=notifier or build_notifier(settings),
            ttl=settings.OTP_TTL_SECONDS,
        )

        if settings.OTP_SWEEP_INTERVAL_SEC > 0:
            sweeper = asyncio.create_task(otp_sweeper.run_forever(_ledger, settings.OTP_SWEEP_INTERVAL_SEC))
        app.state.otp_sweeper = sweeper

        log.info("startup complete", extra={"extra": f"otp_backend={type(_ledger).__name__}"})
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            if owned_ledger is not None:
                await owned_ledger.close()
            if engine is not None:
                await engine.dispose()

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )
    # then your custom middlewares
    app.add_middleware(OriginGuardMiddleware, allowed_origins=settings.ALLOWED_ORIGINS)
    app.add_middleware(RequestContextMiddleware, header=settings.REQUEST_ID_HEADER)
    app.add_middleware(MetricsHTTPMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router.router)
    app.include_router(auth_router.router)
    app.include_router(metrics_router.router)

    return app


def main():
    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(create_app(settings), host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    main()
