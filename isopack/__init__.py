"""
isopack - 目录树到 ISO 9660 / Joliet / UDF 光盘镜像的打包工具

Package a directory tree into an ISO 9660 / Joliet / UDF disc image.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config.schema import BuildRequest, FileSystemType, IsoPackConfig
from .build.builder import Builder, BuildResult

__all__ = ["BuildRequest", "FileSystemType", "IsoPackConfig", "Builder", "BuildResult", "__version__"]
