"""
Logger Configuration
统一日志配置
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# 全局 Console 实例
console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

ROOT_LOGGER = "article_agent"
LOG_DIR = Path(__file__).parent.parent / "logs"


def setup_logger(
    name: str = ROOT_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        level: 日志级别
        log_file: 日志文件名 (写入 logs/ 目录, 可选)
        use_rich: 是否使用 Rich 美化输出

    Returns:
        配置好的 Logger 实例
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 已配置过则只调整级别
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    if use_rich:
        console_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """获取日志记录器; 子记录器通过传播复用根记录器的 handler"""
    if name != ROOT_LOGGER and name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)

    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger


def get_scraper_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER}.scrapers")


def get_provider_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER}.providers")


def get_pipeline_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER}.pipeline")


def get_rag_logger() -> logging.Logger:
    return get_logger(f"{ROOT_LOGGER}.rag")
