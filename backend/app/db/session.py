# backend/app/db/session.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.db.base import Base


def _connect_args(url: str) -> dict:
    # sqlite 는 스케줄러/백그라운드 스레드에서도 같은 파일을 열 수 있어야 함
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db() -> None:
    """
    애플리케이션 시작 시 한 번 호출해서 테이블 생성.
    모든 도메인 모델을 메타데이터에 등록한 뒤 create_all 을 수행한다.
    """
    # ✅ 달력 관련 도메인 모델을 한 번에 import
    import app.domain.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
