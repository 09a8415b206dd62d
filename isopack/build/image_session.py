"""
镜像会话

封装 pycdlib 的镜像构建对象：按文件系统类型初始化卷描述符，
注册文件（自动创建父目录），最后把镜像写入输出流。

文件内容不会在注册时读取。pycdlib 在写入镜像时逐个打开源文件，
复制完该文件的数据后立即关闭，因此同一时刻最多只持有一个源文件句柄。
"""

from typing import BinaryIO, Callable, Optional

import pycdlib
from pycdlib.pycdlibexception import PyCdlibException

from ..config.schema import FileSystemType
from .build_context import ImageIOError
from .collector import FileInfo
from .iso_names import IsoPathMapper, MappedPath, normalize_volume_label

ISO_INTERCHANGE_LEVEL = 4
JOLIET_LEVEL = 3
UDF_VERSION = '2.60'
APPLICATION_IDENT = 'ISOPACK'


class ImageSession:
    """单次构建使用的镜像会话"""

    def __init__(self, volume_label: str, filesystem: FileSystemType):
        self.filesystem = filesystem
        self.volume_label = normalize_volume_label(volume_label, filesystem.use_joliet)
        self.files_added = 0
        self.directories_added = 0
        self._mapper = IsoPathMapper(use_joliet=filesystem.use_joliet, use_udf=filesystem.use_udf)
        self._iso: Optional[pycdlib.PyCdlib] = None

    def open(self) -> 'ImageSession':
        """初始化新的镜像

        Raises:
            ImageIOError: 后端拒绝参数
        """
        iso = pycdlib.PyCdlib()
        try:
            iso.new(
                interchange_level=ISO_INTERCHANGE_LEVEL,
                vol_ident=self.volume_label,
                app_ident_str=APPLICATION_IDENT,
                joliet=JOLIET_LEVEL if self.filesystem.use_joliet else None,
                udf=UDF_VERSION if self.filesystem.use_udf else None,
            )
        except PyCdlibException as e:
            raise ImageIOError(f"无法初始化镜像: {e}") from e
        self._iso = iso
        return self

    def __enter__(self) -> 'ImageSession':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._iso is not None

    def _require_open(self) -> pycdlib.PyCdlib:
        if self._iso is None:
            raise ImageIOError("镜像会话尚未初始化")
        return self._iso

    def _add_directory(self, mapped: MappedPath) -> None:
        iso = self._require_open()
        iso.add_directory(mapped.iso_path, joliet_path=mapped.joliet_path, udf_path=mapped.udf_path)
        self.directories_added += 1

    def add_file(self, file_info: FileInfo) -> MappedPath:
        """注册一个源文件

        Raises:
            ImageIOError: 文件无法访问或后端拒绝该路径
        """
        iso = self._require_open()
        new_dirs, mapped = self._mapper.map_file(file_info.relative_path)
        try:
            for directory in new_dirs:
                self._add_directory(directory)
            iso.add_file(
                str(file_info.path),
                iso_path=mapped.iso_path,
                joliet_path=mapped.joliet_path,
                udf_path=mapped.udf_path,
            )
        except OSError as e:
            raise ImageIOError(f"无法读取源文件 {file_info.path}: {e}") from e
        except PyCdlibException as e:
            raise ImageIOError(f"无法添加文件 {file_info.relative_path}: {e}") from e

        self.files_added += 1
        return mapped

    def write(self, output_stream: BinaryIO,
              progress_cb: Optional[Callable[[int, int, object], None]] = None) -> None:
        """把镜像写入输出流

        Raises:
            ImageIOError: 读取源文件或写入输出失败
        """
        iso = self._require_open()
        try:
            iso.write_fp(output_stream, progress_cb=progress_cb)
        except OSError as e:
            raise ImageIOError(f"写入镜像失败: {e}") from e
        except PyCdlibException as e:
            raise ImageIOError(f"生成镜像失败: {e}") from e

    def close(self) -> None:
        """释放会话资源，可重复调用"""
        if self._iso is not None:
            iso, self._iso = self._iso, None
            iso.close()


def open_session(volume_label: str, filesystem: FileSystemType) -> ImageSession:
    """创建并初始化镜像会话"""
    return ImageSession(volume_label, filesystem).open()
