"""
请求验证步骤模块

按顺序检查构建请求，遇到第一个问题立即失败，此时尚未进行任何文件读写。
"""

from ...utils import ensure_directory, expand_path
from ...utils.logging import debug, info, LogStage
from isopack.build.build_context import (
    BuildContext,
    DirectoryNotFoundError,
    ImageIOError,
    RequestValidationError,
)
from .build_step import BuildStep


class RequestValidationStep(BuildStep):
    """请求验证步骤"""

    def __init__(self):
        super().__init__("validate", "验证构建请求")

    def execute(self, context: BuildContext) -> None:
        request = context.request
        info("验证构建请求", stage=LogStage.VALIDATE)

        if not request.source_dir:
            raise RequestValidationError("未指定源目录")
        source_dir = expand_path(request.source_dir)
        if not source_dir.is_dir():
            raise DirectoryNotFoundError(source_dir)

        if not request.output_path:
            raise RequestValidationError("未指定输出路径")
        output_path = expand_path(request.output_path)
        if output_path.is_dir():
            raise RequestValidationError(f"输出路径是一个目录: {output_path}")

        if not output_path.parent.exists():
            try:
                ensure_directory(output_path.parent)
            except OSError as e:
                raise ImageIOError(f"无法创建输出目录 {output_path.parent}: {e}") from e
            debug(f"已创建输出目录: {output_path.parent}", stage=LogStage.VALIDATE)

        context.source_dir = source_dir
        context.output_path = output_path
        debug(f"源目录: {source_dir}", stage=LogStage.VALIDATE)
        debug(f"输出路径: {output_path}", stage=LogStage.VALIDATE)
