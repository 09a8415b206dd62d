"""通用工具模块"""

from .logging import (
    configure_logging,
    get_stage_logger,
    StageLogger,
    LogStage,
    OutputLevel,
    collect_logger,
    image_logger,
    write_logger,
)

from .paths import (
    expand_path,
    ensure_directory,
    to_posix_relative,
    is_within,
    format_size,
)

__all__ = [
    # 日志相关
    "configure_logging",
    "get_stage_logger",
    "StageLogger",
    "LogStage",
    "OutputLevel",
    "collect_logger",
    "image_logger",
    "write_logger",

    # 路径相关
    "expand_path",
    "ensure_directory",
    "to_posix_relative",
    "is_within",
    "format_size",
]
