"""
构建器主类

负责整个构建流程的协调，使用管道模式组织构建步骤，
把成功、取消和失败统一转换为 BuildResult。
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List, TYPE_CHECKING

from ..config.schema import BuildRequest
from .build_pipeline import BuildPipeline
from .build_context import BuildError, BuildStatus, CancellationToken, ProgressCallback

if TYPE_CHECKING:
    from .worker import BuildHandle


@dataclass
class BuildResult:
    """构建结果"""
    status: BuildStatus
    output_path: Optional[Path] = None
    output_size: Optional[int] = None
    build_time: Optional[float] = None
    file_count: int = 0
    error: Optional[str] = None
    exception: Optional[BuildError] = None

    @property
    def success(self) -> bool:
        return self.status is BuildStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status is BuildStatus.CANCELLED


class Builder:
    """镜像构建器

    使用管道模式协调构建步骤，提供统一的构建接口。
    同一个构建器同一时刻只允许一个构建在进行。
    """

    def __init__(self, pipeline: Optional[BuildPipeline] = None):
        self.pipeline = pipeline or BuildPipeline()
        self._in_flight = threading.Lock()

    @property
    def is_busy(self) -> bool:
        return self._in_flight.locked()

    def build(
        self,
        request: BuildRequest,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BuildResult:
        """在当前线程中构建镜像

        Args:
            request: 构建请求
            progress_callback: 进度回调函数
            cancel_token: 取消令牌

        Returns:
            BuildResult: 构建结果，失败时 exception 为具体的 BuildError 子类

        Raises:
            BuildError: 已有构建正在进行
        """
        if not self._in_flight.acquire(blocking=False):
            raise BuildError("已有构建正在进行")
        try:
            return self._run(request, progress_callback, cancel_token)
        finally:
            self._in_flight.release()

    def _run(
        self,
        request: BuildRequest,
        progress_callback: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
    ) -> BuildResult:
        start_time = time.time()
        try:
            context = self.pipeline.execute(request, progress_callback, cancel_token)
        except BuildError as e:
            return BuildResult(
                status=BuildStatus.FAILED,
                build_time=time.time() - start_time,
                error=str(e),
                exception=e,
            )

        build_time = context.build_stats['end_time'] - context.build_stats['start_time']
        if context.status is BuildStatus.CANCELLED:
            return BuildResult(
                status=BuildStatus.CANCELLED,
                build_time=build_time,
                error="构建已被取消",
            )

        output_path = context.output_path
        return BuildResult(
            status=BuildStatus.COMPLETED,
            output_path=output_path,
            output_size=output_path.stat().st_size if output_path and output_path.exists() else None,
            build_time=build_time,
            file_count=context.build_stats['total_files'],
        )

    def start(
        self,
        request: BuildRequest,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> 'BuildHandle':
        """在后台线程中启动构建

        调用方线程在返回前即占用构建锁，工作线程结束时释放。

        Returns:
            BuildHandle: 可用于取消和等待的构建句柄

        Raises:
            BuildError: 已有构建正在进行
        """
        from .worker import BuildWorker

        if not self._in_flight.acquire(blocking=False):
            raise BuildError("已有构建正在进行")
        try:
            worker = BuildWorker(self, request, progress_callback)
            worker.start()
        except Exception:
            self._in_flight.release()
            raise
        return worker.handle

    def _release(self) -> None:
        self._in_flight.release()

    def get_pipeline(self) -> BuildPipeline:
        """获取构建管道，用于自定义构建流程"""
        return self.pipeline

    def validate_build_pipeline(self) -> List[str]:
        """验证构建管道的完整性"""
        return self.pipeline.validate_pipeline()


def build_image(
    request: BuildRequest,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> BuildResult:
    """便捷函数：使用默认管道构建镜像"""
    return Builder().build(request, progress_callback, cancel_token)
