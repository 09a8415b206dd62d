"""
文件收集步骤模块

编译排除模式并收集要写入镜像的文件。
"""

from ...utils import format_size, is_within, to_posix_relative
from ...utils.logging import info, success, debug, LogStage
from isopack.build.build_context import BuildContext, RequestValidationError
from .build_step import BuildStep
from isopack.build.collector import FileCollector
from isopack.build.patterns import compile_patterns


class FileCollectionStep(BuildStep):
    """文件收集步骤"""

    def __init__(self):
        super().__init__("collect", "收集要打包的文件")
        self.collector = FileCollector()

    def execute(self, context: BuildContext) -> None:
        if context.source_dir is None or context.output_path is None:
            raise RequestValidationError("构建请求尚未验证")

        # 模式错误在遍历之前报告
        context.matcher = compile_patterns(context.request.exclude)
        if len(context.matcher):
            debug(f"排除模式: {context.matcher.patterns}", stage=LogStage.COLLECT)

        info(f"收集文件: {context.source_dir}", stage=LogStage.COLLECT)
        files = self.collector.collect(context.source_dir, context.matcher)

        # 输出文件位于源目录内时不能把它自己打包进去
        if is_within(context.output_path, context.source_dir):
            own = to_posix_relative(context.output_path, context.source_dir)
            kept = [f for f in files if f.relative_path != own]
            if len(kept) != len(files):
                info(f"跳过输出文件自身: {own}", stage=LogStage.COLLECT)
            files = kept

        total_size = sum(f.size for f in files)
        context.files = files
        context.build_stats['total_files'] = len(files)
        context.build_stats['total_size'] = total_size

        stats = self.collector.get_statistics()
        success("文件收集完成", stage=LogStage.COLLECT)
        info(f"  文件数量: {len(files)}")
        info(f"  总大小: {format_size(total_size)}")
        if stats['excluded']:
            info(f"  已排除: {stats['excluded']}")
        if stats['skipped_links']:
            info(f"  跳过目录链接: {stats['skipped_links']}")

        # 在 DEBUG 级别输出前 20 个文件用于诊断
        for idx, f in enumerate(files[:20]):
            debug(f"文件[{idx}]: {f.relative_path} size={format_size(f.size)}", stage=LogStage.COLLECT)
        if len(files) > 20:
            debug(f"... 还有 {len(files) - 20} 个文件未列出", stage=LogStage.COLLECT)
