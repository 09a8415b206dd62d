"""
镜像检查

打开已生成的镜像并列出其中的文件，用于核对构建结果。
优先读取信息最完整的命名空间：UDF，其次 Joliet，最后 ISO 9660。
"""

import re
from pathlib import Path
from typing import Dict, List, Union

import pycdlib
from pycdlib.pycdlibexception import PyCdlibException

from .build_context import ImageIOError

_VERSION_SUFFIX = re.compile(r';\d+$')


def _clean_iso_name(name: str) -> str:
    """去掉 ISO 9660 名称的版本号和结尾的点"""
    return _VERSION_SUFFIX.sub('', name).rstrip('.')


def _open(image_path: Union[str, Path]) -> pycdlib.PyCdlib:
    iso = pycdlib.PyCdlib()
    try:
        iso.open(str(image_path))
    except OSError as e:
        raise ImageIOError(f"无法打开镜像 {image_path}: {e}") from e
    except PyCdlibException as e:
        raise ImageIOError(f"无效的镜像文件 {image_path}: {e}") from e
    return iso


def _walk(iso: pycdlib.PyCdlib, namespace: str) -> List[str]:
    files: List[str] = []
    for dirname, _, filenames in iso.walk(**{namespace: '/'}):
        prefix = dirname.strip('/')
        for name in filenames:
            if namespace == 'iso_path':
                name = _clean_iso_name(name)
            files.append(f"{prefix}/{name}" if prefix else name)
    return files


def detect_namespace(iso: pycdlib.PyCdlib) -> str:
    if iso.has_udf():
        return 'udf_path'
    if iso.has_joliet():
        return 'joliet_path'
    return 'iso_path'


def list_image_files(image_path: Union[str, Path]) -> List[str]:
    """列出镜像中的所有文件

    Returns:
        List[str]: 排序后的相对路径（正斜杠分隔）

    Raises:
        ImageIOError: 镜像无法打开或解析
    """
    iso = _open(image_path)
    try:
        return sorted(_walk(iso, detect_namespace(iso)))
    except PyCdlibException as e:
        raise ImageIOError(f"读取镜像目录失败: {e}") from e
    finally:
        iso.close()


def read_volume_label(image_path: Union[str, Path]) -> str:
    """读取主卷描述符中的卷标"""
    iso = _open(image_path)
    try:
        return iso.pvd.volume_identifier.decode('ascii', errors='replace').strip()
    finally:
        iso.close()


def describe_image(image_path: Union[str, Path]) -> Dict[str, object]:
    """汇总镜像信息：卷标、命名空间和文件列表"""
    iso = _open(image_path)
    try:
        namespace = detect_namespace(iso)
        files = sorted(_walk(iso, namespace))
        return {
            'path': str(image_path),
            'volume_label': iso.pvd.volume_identifier.decode('ascii', errors='replace').strip(),
            'joliet': iso.has_joliet(),
            'udf': iso.has_udf(),
            'namespace': namespace.replace('_path', ''),
            'file_count': len(files),
            'files': files,
        }
    except PyCdlibException as e:
        raise ImageIOError(f"读取镜像目录失败: {e}") from e
    finally:
        iso.close()
