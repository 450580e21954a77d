import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from di.container import ApplicationContainer as DependencyContainer
from api.features.chat.exceptions import InvalidInputError
from api.shared.dtos import DbHealthResponse, HealthCheckResponse
from api.shared.exceptions import ChatServiceException
from core.settings import SETTINGS

# Configure logging
logging.basicConfig(
    level=SETTINGS.APP.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("support_chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.begin() as _conn:
            # Verify database connection
            await _conn.execute(text("SELECT 1"))
            logger.info(
                f"✅ Database connection established in {time.time() - db_start:.2f}s"
            )

        generator = _app.container.infrastructure.text_generator()
        if not getattr(generator, "configured", True):
            logger.warning(
                "GEMINI_API_KEY is not set; every reply will use the fallback text"
            )

        logger.info(
            f"✅ Application startup completed in {time.time() - start_time:.2f}s"
        )
    except Exception as e:
        logger.exception(f"❌ Failed to initialize application: {str(e)}")
        raise

    yield

    db_resource = _app.container.infrastructure.database()
    if db_resource:
        await db_resource.shutdown()
    logger.info("Application shutdown complete")


def _error(status_code: int, message: str, error_code: str | None = None) -> JSONResponse:
    content = {"error": message}
    if error_code:
        content["error_code"] = error_code
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(_app: FastAPI) -> None:
    @_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.info(f"Invalid request to {request.url.path}: {exc.errors()}")
        return _error(400, "Invalid request body", "VALIDATION_ERROR")

    @_app.exception_handler(ChatServiceException)
    async def chat_exception_handler(request: Request, exc: ChatServiceException):
        if isinstance(exc, InvalidInputError):
            return _error(400, exc.message, exc.error_code)
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return _error(500, exc.message, exc.error_code)

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return _error(500, "Internal Server Error")


def create_fastapi_app() -> CustomFastAPI:
    _app = CustomFastAPI(
        title="Support Chat API",
        description="Conversational support backend with Gemini-generated replies",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=SETTINGS.APP.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(_app)

    # Include feature routers
    from api.features.chat.router import router as chat_router

    _app.include_router(chat_router, prefix="/chat", tags=["Chat"])

    @_app.get("/health", response_model=HealthCheckResponse)
    async def health():
        return HealthCheckResponse(status="ok")

    @_app.get("/db-health", response_model=DbHealthResponse)
    async def db_health(request: Request):
        db_resource = request.app.container.infrastructure.database()
        try:
            async with db_resource.get_session() as session:
                res = await session.execute(select(func.now()))
                server_time = res.scalar_one()
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            logger.error(f"Database health check failed: {e}")
            return _error(503, "Database unreachable", "DATABASE_UNAVAILABLE")
        return DbHealthResponse(db="connected", time=server_time)

    return _app


app = create_fastapi_app()


def run() -> None:
    import uvicorn

    logger.info(f"Starting support chat API on port {SETTINGS.APP.PORT}")
    uvicorn.run(
        "api.main:app",
        host=SETTINGS.APP.HOST,
        port=SETTINGS.APP.PORT,
        log_level=SETTINGS.APP.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
