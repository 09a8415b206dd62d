"""
构建上下文模块

定义构建过程中的共享数据结构、取消令牌和异常类。
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..config.schema import BuildRequest

if TYPE_CHECKING:
    from .collector import FileInfo
    from .patterns import PatternMatcher

# 进度回调类型：接收 [0.0, 1.0] 之间的完成比例
ProgressCallback = Callable[[float], None]


class BuildError(Exception):
    """构建错误基类"""
    pass


class RequestValidationError(BuildError):
    """构建请求字段缺失或无效"""
    pass


class InvalidPatternError(BuildError):
    """排除模式无法编译"""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"无效的排除模式 '{pattern}': {reason}")
        self.pattern = pattern
        self.reason = reason


class DirectoryNotFoundError(BuildError):
    """源目录不存在（构建开始时或遍历过程中消失）"""

    def __init__(self, path, message: Optional[str] = None):
        super().__init__(message or f"指定的源目录不存在: {path}")
        self.path = path


class ImageIOError(BuildError):
    """读取源文件或写入镜像失败"""
    pass


class BuildCancelledError(BuildError):
    """构建已被取消"""
    pass


class BuildStatus(str, Enum):
    """构建结果状态"""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationToken:
    """协作式取消令牌

    调用方可在任意线程中调用 cancel()，构建在下一个检查点生效。
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """请求取消"""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """已请求取消时抛出 BuildCancelledError"""
        if self._event.is_set():
            raise BuildCancelledError("构建已被取消")


@dataclass
class BuildContext:
    """构建上下文，包含构建过程中的共享数据"""
    request: BuildRequest
    progress_callback: Optional[ProgressCallback] = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    # 构建过程中生成的数据
    source_dir: Optional[Path] = None
    output_path: Optional[Path] = None
    matcher: Optional['PatternMatcher'] = None
    files: Optional[List['FileInfo']] = None
    status: Optional[BuildStatus] = None

    # 统计信息
    build_stats: Dict[str, Any] = field(default_factory=lambda: {
        'start_time': 0.0,
        'end_time': 0.0,
        'total_files': 0,
        'total_size': 0,
        'image_size': 0,
    })

    def report_progress(self, fraction: float) -> None:
        if self.progress_callback:
            self.progress_callback(fraction)
