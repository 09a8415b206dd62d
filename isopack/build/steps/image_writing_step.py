"""
镜像写入步骤模块

打开输出文件并委托 ImageBuilder 生成镜像。
构建被取消或失败时删除不完整的输出文件。
"""

from typing import Optional

from ...utils.logging import info, warning, LogStage
from isopack.build.build_context import BuildContext, BuildStatus, ImageIOError, RequestValidationError
from .build_step import BuildStep
from isopack.build.image_builder import ImageBuilder


class ImageWritingStep(BuildStep):
    """镜像写入步骤"""

    def __init__(self, image_builder: Optional[ImageBuilder] = None):
        super().__init__("write", "生成镜像文件")
        self.image_builder = image_builder or ImageBuilder()

    def execute(self, context: BuildContext) -> None:
        if context.output_path is None or context.files is None:
            raise RequestValidationError("文件尚未收集")

        request = context.request
        # 未指定卷标时使用源目录名
        volume_label = request.volume_label or context.source_dir.name
        output_path = context.output_path
        info(f"生成镜像: {output_path}", stage=LogStage.WRITE)

        try:
            stream = open(output_path, 'wb')
        except OSError as e:
            raise ImageIOError(f"无法创建输出文件 {output_path}: {e}") from e

        status = BuildStatus.FAILED
        try:
            with stream:
                status = self.image_builder.build(
                    context.files,
                    volume_label,
                    request.filesystem,
                    stream,
                    progress_callback=context.progress_callback,
                    cancel_token=context.cancel_token,
                )
        except OSError as e:
            # 关闭输出流时刷新缓冲区失败
            status = BuildStatus.FAILED
            raise ImageIOError(f"写入镜像失败: {e}") from e
        finally:
            context.status = status
            if status is not BuildStatus.COMPLETED:
                self._remove_partial(context)

        if status is BuildStatus.COMPLETED:
            context.build_stats['image_size'] = output_path.stat().st_size

    @staticmethod
    def _remove_partial(context: BuildContext) -> None:
        try:
            context.output_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            warning(f"无法删除不完整的输出文件 {context.output_path}: {e}", stage=LogStage.WRITE)
        else:
            info(f"已删除不完整的输出文件: {context.output_path}", stage=LogStage.WRITE)
