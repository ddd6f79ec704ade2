"""项目配置设置."""

from dotenv import load_dotenv
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

# 先加载.env.example（最低优先级），再加载.env（覆盖前者），最后环境变量最高
load_dotenv(dotenv_path=Path(__file__).parent.parent.parent / '.env.example', override=False)
load_dotenv(dotenv_path=Path(__file__).parent.parent.parent / '.env', override=True)


def _default_workers() -> int:
    return min(4, os.cpu_count() or 1)


class DocumentConfig(BaseModel):
    """文档处理配置."""

    placeholder_pattern: str = Field(default_factory=lambda: os.environ.get("PLACEHOLDER_PATTERN", r"\{\{.*?\}\}"))  # 占位符正则表达式（非贪婪）
    context_window: int = Field(default_factory=lambda: int(os.environ.get("CONTEXT_WINDOW", "50")))  # 上下文窗口大小（字符数）
    max_workers: int = Field(default_factory=lambda: int(os.environ.get("MAX_WORKERS", str(_default_workers()))))  # 文件级并发数
    backup_timestamp_format: str = Field(default_factory=lambda: os.environ.get("BACKUP_TIMESTAMP_FORMAT", "%Y%m%d_%H%M%S"))  # 备份文件时间戳格式


class LogConfig(BaseModel):
    """日志配置."""

    level: str = Field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))  # 日志级别
    # 精简日志格式
    format: str = Field(default_factory=lambda: os.environ.get("LOG_FORMAT", "<level>{level: <8}</level>| - <level>{message}</level>"))
    log_file: Optional[str] = Field(default_factory=lambda: os.environ.get("LOG_FILE") or None)  # 日志文件路径，未设置则只输出到控制台
    rotation: str = Field(default_factory=lambda: os.environ.get("LOG_ROTATION", "10 MB"))  # 日志轮转大小
    retention: str = Field(default_factory=lambda: os.environ.get("LOG_RETENTION", "1 week"))  # 日志保留时间


class Settings(BaseModel):
    """项目全局设置."""

    document: DocumentConfig = Field(default_factory=DocumentConfig)  # 文档处理相关配置
    log: LogConfig = Field(default_factory=LogConfig)  # 日志相关配置

    # 项目路径配置
    project_dir: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)  # 项目根目录


# 单例模式，避免多次实例化
_settings = None
def get_settings():
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

settings = get_settings()
