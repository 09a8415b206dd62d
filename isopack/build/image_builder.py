"""
镜像构建器

把文件清单逐个注册到镜像会话，每个文件注册后报告一次进度，
在每个文件之前以及写出镜像之前检查取消令牌，最后把镜像写入输出流。
"""

from typing import BinaryIO, Callable, Optional, Sequence

from ..config.schema import FileSystemType
from ..utils.logging import image_logger, write_logger
from .build_context import (
    BuildCancelledError,
    BuildStatus,
    CancellationToken,
    ProgressCallback,
)
from .collector import FileInfo
from .image_session import ImageSession, open_session

SessionFactory = Callable[[str, FileSystemType], ImageSession]


class ImageBuilder:
    """镜像构建器

    取消以返回值 ``BuildStatus.CANCELLED`` 表示；读写失败抛出 ImageIOError。
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory or open_session
        self.files_added = 0

    def build(
        self,
        files: Sequence[FileInfo],
        volume_label: str,
        filesystem: FileSystemType,
        output_stream: BinaryIO,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BuildStatus:
        """构建镜像并写入输出流

        Args:
            files: 按顺序注册的文件清单
            volume_label: 卷标（会被规范化）
            filesystem: 文件系统类型
            output_stream: 以二进制写模式打开的输出流
            progress_callback: 进度回调，参数为 [0.0, 1.0] 的完成比例
            cancel_token: 取消令牌

        Returns:
            BuildStatus: COMPLETED 或 CANCELLED

        Raises:
            ImageIOError: 读取源文件或写入镜像失败
        """
        token = cancel_token or CancellationToken()
        self.files_added = 0
        total = len(files)

        session = self.session_factory(volume_label, filesystem)
        try:
            image_logger.info(f"镜像卷标: {session.volume_label}, 文件系统: {filesystem.value}")

            for processed, file_info in enumerate(files, start=1):
                token.raise_if_cancelled()
                mapped = session.add_file(file_info)
                self.files_added += 1
                image_logger.debug(f"添加: {file_info.relative_path} -> {mapped.iso_path}")
                if progress_callback:
                    progress_callback(processed / total)

            token.raise_if_cancelled()
            write_logger.info(f"写入镜像 ({total} 个文件)")
            session.write(output_stream)

        except BuildCancelledError:
            image_logger.warning(f"构建已取消，已添加 {self.files_added}/{total} 个文件")
            return BuildStatus.CANCELLED
        finally:
            session.close()

        if progress_callback:
            progress_callback(1.0)
        return BuildStatus.COMPLETED
