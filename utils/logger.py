"""
Logger Configuration
统一日志配置：控制台走 Rich，可选追加一个运行日志文件
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from rich.logging import RichHandler
from rich.console import Console


# 全局 Console 实例
console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

# 根日志器；各模块 logging.getLogger(__name__) 所在的顶层包共享它的 handler
ROOT_LOGGER = "trends_scraper"
PACKAGE_LOGGERS = ("config", "models", "orchestrator", "processing", "scrapers", "storage", "utils")

# 相对文件名落在这里
LOG_DIR = Path(__file__).parent.parent / "logs"


def _normalize_level(level: Union[int, str]) -> Union[int, str]:
    return level.upper() if isinstance(level, str) else level


def resolve_log_path(log_file: Union[str, Path]) -> Path:
    """相对路径放到 logs/ 下，绝对路径原样使用"""
    path = Path(log_file)
    return path if path.is_absolute() else LOG_DIR / path


def _console_handler(use_rich: bool) -> logging.Handler:
    if use_rich:
        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def _attach_file_handler(logger: logging.Logger, path: Path) -> None:
    # 同一文件只挂一次
    target = str(path.resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)


def setup_logger(
    name: str = ROOT_LOGGER,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    设置日志记录器

    控制台 handler 只创建一次；重复调用时只更新级别，并按需追加文件 handler。

    Args:
        name: 日志记录器名称
        level: 日志级别 (大小写均可)
        log_file: 日志文件，相对路径位于 logs/ 下
        use_rich: 是否使用 Rich 输出

    Returns:
        配置好的 Logger 实例
    """
    level = _normalize_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(_console_handler(use_rich))
    if log_file:
        _attach_file_handler(logger, resolve_log_path(log_file))

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def setup_package_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """为整个项目配置日志：根日志器 + 各顶层包共享同一组 handler"""
    level = _normalize_level(level)
    root = setup_logger(ROOT_LOGGER, level=level, log_file=log_file, use_rich=use_rich)
    for package in PACKAGE_LOGGERS:
        package_logger = logging.getLogger(package)
        package_logger.setLevel(level)
        package_logger.propagate = False
        package_logger.handlers = list(root.handlers)
    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """获取日志记录器，未配置过时按默认配置初始化"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger
