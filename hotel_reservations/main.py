"""
酒店预订服务主应用入口
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from hotel_reservations.config import settings
from hotel_reservations.database import init_db
from hotel_reservations.exceptions import ReservationError
from hotel_reservations.logging_config import setup_logging
from hotel_reservations.models.schemas import ErrorResponse
from hotel_reservations.routers import reservations, rooms, clients

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    setup_logging(settings.LOG_LEVEL)
    init_db()
    mode = "standalone" if settings.STANDALONE_MODE else "integrated"
    logger.info(f"{settings.APP_NAME} started in {mode} mode")
    if not settings.STANDALONE_MODE:
        logger.info(f"Room service: {settings.ROOM_SERVICE_URL}")
        logger.info(f"Client service: {settings.CLIENT_SERVICE_URL}")
    if not settings.DATABASE_ISOLATION_LEVEL:
        logger.warning(
            "DATABASE_ISOLATION_LEVEL not set: double-booking protection is per process, "
            "run a single worker"
        )
    yield


# 创建应用
app = FastAPI(
    title="Hotel Reservations",
    description="预订生命周期管理，协调房间服务与客户服务",
    version="1.0.0",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(http_status: int, message: str, error_code: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        http_status=http_status,
        message=message,
        error_code=error_code,
        details=details or {},
    )
    return JSONResponse(status_code=http_status, content=jsonable_encoder(body))


# ============== 异常处理 ==============

@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return _error_response(exc.http_status, exc.message, exc.code, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ()) if p != "body") for e in errors]
    message = "; ".join(f"{f}: {e.get('msg')}" for f, e in zip(fields, errors))
    return _error_response(
        status.HTTP_400_BAD_REQUEST, message or "Invalid request", "VALIDATION_ERROR",
        {"fields": fields},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR"
    )


# 注册路由
app.include_router(reservations.router)
app.include_router(rooms.router)
app.include_router(clients.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "description": "预订生命周期与可用性编排服务"
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {
        "status": "healthy",
        "mode": "standalone" if settings.STANDALONE_MODE else "integrated",
    }


if __name__ == "__main__":
    import uvicorn
    # 房间锁是进程内的，保持单 worker
    uvicorn.run("hotel_reservations.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG, workers=1)
