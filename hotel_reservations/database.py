"""
数据库配置 - 持久化层
预订实体通过 SQLAlchemy 持久化，版本号列提供乐观并发控制
"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from hotel_reservations.config import settings


def _build_engine(url: str, isolation_level=None):
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    if isolation_level:
        kwargs["isolation_level"] = isolation_level
    return create_engine(url, **kwargs)


engine = _build_engine(settings.DATABASE_URL, settings.DATABASE_ISOLATION_LEVEL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """依赖注入：获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """初始化数据库表"""
    from hotel_reservations.models import entities  # noqa
    Base.metadata.create_all(bind=engine)

    # SQLite 启用 WAL 模式以提高并发性能
    if engine.dialect.name == "sqlite":
        with engine.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))
            conn.commit()
