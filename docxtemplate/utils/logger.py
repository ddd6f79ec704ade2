"""日志配置模块."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from docxtemplate.config.settings import settings


def resolve_log_file(log_file: Optional[str]) -> Optional[Path]:
    """日志文件路径，相对路径以项目根目录为基准；未配置时返回 None."""
    if not log_file:
        return None
    log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = settings.project_dir / log_path
    return log_path


def setup_logger(level: Optional[str] = None) -> str:
    """配置日志系统，可重复调用，每次都会替换已有的处理器.

    Args:
        level: 日志级别，默认取配置中的 LOG_LEVEL；命令行 --verbose 传入 DEBUG

    Returns:
        实际生效的日志级别
    """
    level = (level or settings.log.level).upper()
    logger.remove()

    logger.add(sys.stderr, format=settings.log.format, level=level, colorize=True)

    log_path = resolve_log_file(settings.log.log_file)
    if log_path is not None:
        logger.add(
            log_path,
            format=settings.log.format,
            level=level,
            rotation=settings.log.rotation,
            retention=settings.log.retention,
            encoding="utf-8",
        )

    logger.debug(f"日志级别: {level}，日志文件: {log_path or '无'}")
    return level
