"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import payments as payments_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from core.settings import payment_settings


# 初始化日志：在入口处显式配置
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    missing = payment_settings.blackcat.missing_keys()
    if any(missing.values()):
        logger.warning(
            "payment_gateway_not_configured",
            missing_keys=missing,
            message="Checkout requests will fail until BLACKCAT__PUBLIC_KEY and BLACKCAT__SECRET_KEY are set",
        )
    else:
        logger.info("payment_gateway_configured", base_url=payment_settings.blackcat.base_url)
    if not payment_settings.utmify.api_token:
        logger.warning("order_tracking_token_missing", message="UTMIFY__API_TOKEN not set, tracking calls will be rejected")
    logger.info("application_started", webhook_url=payment_settings.webhook_url, environment=settings.ENVIRONMENT)

    yield

    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="PIX checkout, payment status and gateway webhook reconciliation",
)

# 中间件按添加顺序逆序执行：RequestID 需包在 Logging 外层
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(payments_routes.router)


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
