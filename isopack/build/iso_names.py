"""
ISO 9660 / Joliet / UDF 名称映射

把源目录中的相对路径映射为各命名空间下合法且唯一的镜像路径：

- ISO 9660：沿用交换级别 3 的 d 字符规则（在级别 4 下同样合法）：大写，仅允许 A-Z、0-9、_，文件名最多 30 个字符
  （不含点和版本号），目录名最多 31 个字符，文件名附加 ``;1`` 版本号；
- Joliet：保留大小写，替换非法字符，每级名称最多 64 个字符；
- UDF：保留原始名称。

同一目录下映射后发生冲突的名称追加 ``_1``、``_2`` 等后缀。
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

ISO_FILE_NAME_MAX = 30
ISO_DIR_NAME_MAX = 31
ISO_EXTENSION_MAX = 8
JOLIET_NAME_MAX = 64
VOLUME_LABEL_MAX = 32
JOLIET_VOLUME_LABEL_MAX = 16
DEFAULT_VOLUME_LABEL = "CDROM"

_NON_D_CHARACTERS = re.compile(r'[^A-Z0-9_]')
_JOLIET_INVALID = re.compile(r'[*/:;?\\\x00-\x1f]')


def to_d_characters(text: str) -> str:
    """转换为 ISO 9660 d 字符（大写，非法字符替换为 '_'）"""
    return _NON_D_CHARACTERS.sub('_', text.upper())


def normalize_volume_label(label: Optional[str], use_joliet: bool = False) -> str:
    """规范化卷标

    Joliet 卷描述符以 UTF-16 存储卷标，因此启用 Joliet 时最多 16 个字符。
    """
    normalized = to_d_characters((label or "").strip())
    limit = JOLIET_VOLUME_LABEL_MAX if use_joliet else VOLUME_LABEL_MAX
    normalized = normalized[:limit]
    if not normalized.strip('_'):
        return DEFAULT_VOLUME_LABEL
    return normalized


def _split_extension(name: str) -> Tuple[str, str]:
    stem, dot, ext = name.rpartition('.')
    if not dot:
        return name, ''
    return stem, ext


def iso9660_file_name(name: str) -> Tuple[str, str]:
    """生成 ISO 9660 文件名的 (主名, 扩展名)，均不含点和版本号"""
    stem, ext = _split_extension(name)
    ext = to_d_characters(ext)[:ISO_EXTENSION_MAX]
    stem = to_d_characters(stem)[:ISO_FILE_NAME_MAX - len(ext)]
    if not stem and not ext:
        stem = '_'
    return stem, ext


def iso9660_dir_name(name: str) -> str:
    return to_d_characters(name)[:ISO_DIR_NAME_MAX] or '_'


def joliet_name(name: str) -> Tuple[str, str]:
    """生成 Joliet 名称的 (主名, 扩展名)"""
    cleaned = _JOLIET_INVALID.sub('_', name)
    stem, ext = _split_extension(cleaned)
    if len(ext) >= JOLIET_NAME_MAX - 1:
        return cleaned[:JOLIET_NAME_MAX], ''
    if ext:
        stem = stem[:JOLIET_NAME_MAX - len(ext) - 1]
    else:
        stem = stem[:JOLIET_NAME_MAX]
    return stem, ext


def _join(stem: str, ext: str) -> str:
    return f"{stem}.{ext}" if ext else stem


def _unique(stem: str, ext: str, used: Set[str], max_len: int, ext_counts: bool) -> str:
    """在 used 中分配唯一名称（按不区分大小写比较），返回不含版本号的名称"""
    candidate = _join(stem, ext)
    if candidate.casefold() not in used:
        used.add(candidate.casefold())
        return candidate

    budget = max_len - (len(ext) + (1 if ext else 0) if ext_counts else 0)
    counter = 1
    while True:
        suffix = f"_{counter}"
        candidate = _join(stem[:max(budget - len(suffix), 1)] + suffix, ext)
        if candidate.casefold() not in used:
            used.add(candidate.casefold())
            return candidate
        counter += 1


@dataclass(frozen=True)
class MappedPath:
    """一个条目在各命名空间中的镜像路径"""
    relative_path: str
    iso_path: str
    joliet_path: Optional[str] = None
    udf_path: Optional[str] = None


def _child(parent: str, name: str) -> str:
    return f"/{name}" if parent == '/' else f"{parent}/{name}"


class IsoPathMapper:
    """相对路径到镜像路径的映射器

    记录已经创建的目录，映射文件时返回尚未创建的父目录列表。
    """

    def __init__(self, use_joliet: bool = True, use_udf: bool = False):
        self.use_joliet = use_joliet
        self.use_udf = use_udf
        root = MappedPath('', '/', '/' if use_joliet else None, '/' if use_udf else None)
        self._dirs: Dict[str, MappedPath] = {'': root}
        self._iso_used: Dict[str, Set[str]] = {}
        self._joliet_used: Dict[str, Set[str]] = {}

    def _map_child(self, parent: MappedPath, name: str, relative_path: str, is_dir: bool) -> MappedPath:
        iso_used = self._iso_used.setdefault(parent.relative_path, set())
        if is_dir:
            iso_name = _unique(iso9660_dir_name(name), '', iso_used, ISO_DIR_NAME_MAX, False)
            iso_path = _child(parent.iso_path, iso_name)
        else:
            stem, ext = iso9660_file_name(name)
            iso_name = _unique(stem, ext, iso_used, ISO_FILE_NAME_MAX, True)
            iso_path = _child(parent.iso_path, f"{iso_name};1")

        joliet_path = None
        if self.use_joliet and parent.joliet_path is not None:
            joliet_used = self._joliet_used.setdefault(parent.relative_path, set())
            j_stem, j_ext = joliet_name(name)
            joliet_path = _child(parent.joliet_path, _unique(j_stem, j_ext, joliet_used, JOLIET_NAME_MAX, True))

        udf_path = None
        if self.use_udf and parent.udf_path is not None:
            udf_path = _child(parent.udf_path, name)

        return MappedPath(relative_path, iso_path, joliet_path, udf_path)

    def map_file(self, relative_path: str) -> Tuple[List[MappedPath], MappedPath]:
        """映射文件路径

        Returns:
            (需要新建的目录列表（由浅到深）, 文件的镜像路径)
        """
        parts = [p for p in relative_path.split('/') if p]
        if not parts:
            raise ValueError("相对路径不能为空")

        new_dirs: List[MappedPath] = []
        parent = self._dirs['']
        for index, part in enumerate(parts[:-1]):
            dir_relative = '/'.join(parts[:index + 1])
            mapped = self._dirs.get(dir_relative)
            if mapped is None:
                mapped = self._map_child(parent, part, dir_relative, is_dir=True)
                self._dirs[dir_relative] = mapped
                new_dirs.append(mapped)
            parent = mapped

        return new_dirs, self._map_child(parent, parts[-1], '/'.join(parts), is_dir=False)
