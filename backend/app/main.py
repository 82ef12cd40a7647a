import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.db.session import init_db
from app.domain.calendar import InvalidDateFormat
from app.services.scheduler import start_scheduler, shutdown_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI Lifespan - 주기 iCal 동기화 스케줄러 시작/종료

    워커를 여러 개 띄우는 배포에서는 한 곳에서만 SCHEDULER_ENABLED=true.
    """
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
    yield
    shutdown_scheduler()


async def _invalid_date_handler(request: Request, exc: InvalidDateFormat) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Stays Calendar Backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 저장된 날짜 문자열이 깨져 있는 경우 500 대신 400
    app.add_exception_handler(InvalidDateFormat, _invalid_date_handler)

    init_db()

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
