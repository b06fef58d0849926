"""
应用配置
从环境变量读取配置，支持独立模式（不依赖外部服务）
"""
from decimal import Decimal
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Hotel Reservations"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./reservations.db"
    # 例如 PostgreSQL 部署时设为 SERIALIZABLE
    # 未设置时防重复预订只依赖进程内的房间锁，只能以单个 worker 运行
    DATABASE_ISOLATION_LEVEL: Optional[str] = None

    # 外部服务配置
    ROOM_SERVICE_URL: str = "http://localhost:8080/service-chambres/api/rooms"
    CLIENT_SERVICE_URL: str = "http://localhost:8080/service-clients/api/clients"
    CONNECT_TIMEOUT: float = 5.0   # 秒
    READ_TIMEOUT: float = 10.0     # 秒

    # 独立模式：所有外部调用替换为本地合成数据
    STANDALONE_MODE: bool = True

    # 业务配置
    DEFAULT_PRICE_PER_NIGHT: Decimal = Decimal("100.00")

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
