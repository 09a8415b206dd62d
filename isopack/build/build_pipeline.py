"""
构建管道模块

使用管道模式协调构建步骤的执行：验证请求、收集文件、生成镜像。
"""

import time
from typing import List, Optional

from ..config.schema import BuildRequest
from ..utils import format_size
from ..utils.logging import info, success, error, debug, LogStage
from .build_context import (
    BuildCancelledError,
    BuildContext,
    BuildError,
    BuildStatus,
    CancellationToken,
    ProgressCallback,
)
from .steps.build_step import BuildStep
from .steps.request_validation_step import RequestValidationStep
from .steps.file_collection_step import FileCollectionStep
from .steps.image_writing_step import ImageWritingStep


class BuildPipeline:
    """构建管道，负责协调构建步骤的执行"""

    def __init__(self, steps: Optional[List[BuildStep]] = None):
        """初始化构建管道

        Args:
            steps: 自定义步骤列表，None 时使用默认步骤
        """
        self._steps: List[BuildStep] = list(steps) if steps is not None else self._default_steps()

    @staticmethod
    def _default_steps() -> List[BuildStep]:
        return [
            RequestValidationStep(),
            FileCollectionStep(),
            ImageWritingStep(),
        ]

    def add_step(self, step: BuildStep, position: Optional[int] = None):
        """添加构建步骤"""
        if position is None:
            self._steps.append(step)
        else:
            self._steps.insert(position, step)

    def remove_step(self, step_name: str):
        """移除构建步骤"""
        self._steps = [step for step in self._steps if step.name != step_name]

    def get_steps(self) -> List[BuildStep]:
        """获取所有构建步骤"""
        return self._steps.copy()

    def execute(
        self,
        request: BuildRequest,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BuildContext:
        """执行构建管道

        Args:
            request: 构建请求
            progress_callback: 进度回调函数
            cancel_token: 取消令牌

        Returns:
            BuildContext: 构建上下文，status 为 COMPLETED 或 CANCELLED

        Raises:
            BuildError: 构建失败（具体子类标明失败原因）
        """
        context = BuildContext(
            request=request,
            progress_callback=progress_callback,
            cancel_token=cancel_token or CancellationToken(),
        )
        context.build_stats['start_time'] = time.time()

        try:
            info(f"开始构建镜像: {request.output_path}", stage=LogStage.INIT)
            debug(
                f"构建请求: filesystem={request.filesystem.value} label={request.volume_label!r} "
                f"exclude={len(request.exclude)}",
                stage=LogStage.INIT,
            )

            for step in self._steps:
                context.cancel_token.raise_if_cancelled()
                info(f"执行步骤: {step.description}", stage=LogStage.INIT)
                step.execute(context)
                if context.status is BuildStatus.CANCELLED:
                    break

        except BuildCancelledError:
            context.status = BuildStatus.CANCELLED
        except BuildError as e:
            self._finish(context, BuildStatus.FAILED)
            error(f"构建失败: {e}", stage=LogStage.ERROR)
            raise
        except Exception as e:
            self._finish(context, BuildStatus.FAILED)
            error(f"构建失败: {e}", stage=LogStage.ERROR)
            raise BuildError(f"构建失败: {e}") from e

        if context.status is BuildStatus.CANCELLED:
            self._finish(context, BuildStatus.CANCELLED)
            info("构建已取消", stage=LogStage.DONE)
            return context

        self._finish(context, BuildStatus.COMPLETED)
        build_time = context.build_stats['end_time'] - context.build_stats['start_time']
        success(f"镜像构建成功: {context.output_path}", stage=LogStage.DONE)
        info(f"构建时间: {build_time:.1f}秒")
        info(f"文件数量: {context.build_stats['total_files']}")
        info(f"原始大小: {format_size(context.build_stats['total_size'])}")
        info(f"镜像大小: {format_size(context.build_stats['image_size'])}")
        return context

    @staticmethod
    def _finish(context: BuildContext, status: BuildStatus) -> None:
        context.status = status
        context.build_stats['end_time'] = time.time()

    def validate_pipeline(self) -> List[str]:
        """验证构建管道的完整性

        Returns:
            List[str]: 验证错误列表，空列表表示验证通过
        """
        errors = []

        if not self._steps:
            errors.append("构建管道中没有步骤")
            return errors

        names = [step.name for step in self._steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            errors.append(f"构建步骤名称重复: {', '.join(duplicates)}")

        return errors
