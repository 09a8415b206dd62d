"""构建服务模块

提供镜像构建的核心功能。
"""

from .builder import Builder, BuildResult, build_image
from .build_context import (
    BuildCancelledError,
    BuildError,
    BuildStatus,
    CancellationToken,
    DirectoryNotFoundError,
    ImageIOError,
    InvalidPatternError,
    ProgressCallback,
    RequestValidationError,
)
from .collector import FileCollector, FileInfo, collect_files
from .image_builder import ImageBuilder
from .image_session import ImageSession
from .inspector import list_image_files, read_volume_label
from .patterns import PatternMatcher, compile_patterns, parse_pattern_text
from .worker import BuildHandle

__all__ = [
    # 主构建器
    "Builder",
    "BuildResult",
    "BuildHandle",
    "build_image",

    # 状态与取消
    "BuildStatus",
    "CancellationToken",
    "ProgressCallback",

    # 异常
    "BuildError",
    "RequestValidationError",
    "InvalidPatternError",
    "DirectoryNotFoundError",
    "ImageIOError",
    "BuildCancelledError",

    # 排除模式与文件收集
    "PatternMatcher",
    "compile_patterns",
    "parse_pattern_text",
    "FileCollector",
    "FileInfo",
    "collect_files",

    # 镜像
    "ImageBuilder",
    "ImageSession",
    "list_image_files",
    "read_volume_label",
]
