"""
镜像构建器单元测试

使用模拟会话测试进度、取消和资源释放，
并通过真实的 pycdlib 镜像验证各文件系统类型的往返结果。
"""

import io
from pathlib import Path

import pytest

from isopack.build.build_context import BuildStatus, CancellationToken, ImageIOError
from isopack.build.collector import FileInfo, collect_files
from isopack.build.image_builder import ImageBuilder
from isopack.build.image_session import ImageSession
from isopack.build.inspector import list_image_files, read_volume_label
from isopack.build.iso_names import MappedPath
from isopack.config.schema import FileSystemType


class FakeSession:
    """模拟镜像会话"""

    def __init__(self, volume_label, filesystem, fail_on=None):
        self.volume_label = volume_label
        self.filesystem = filesystem
        self.fail_on = fail_on
        self.added = []
        self.written = False
        self.closed = False

    def add_file(self, file_info):
        if file_info.relative_path == self.fail_on:
            raise ImageIOError(f"无法读取源文件 {file_info.path}")
        self.added.append(file_info.relative_path)
        return MappedPath(file_info.relative_path, "/" + file_info.relative_path.upper())

    def write(self, output_stream):
        output_stream.write(b"IMAGE")
        self.written = True

    def close(self):
        self.closed = True


def _files(*names):
    return [FileInfo(path=Path("/src") / name, relative_path=name, size=1, mtime=0.0) for name in names]


def _builder_with_fake(**kwargs):
    sessions = []

    def factory(volume_label, filesystem):
        session = FakeSession(volume_label, filesystem, **kwargs)
        sessions.append(session)
        return session

    return ImageBuilder(session_factory=factory), sessions


class TestImageBuilderProgress:
    """进度报告测试"""

    def test_progress_sequence(self):
        """测试每个文件一次进度，最后追加一次 1.0"""
        builder, sessions = _builder_with_fake()
        progress = []

        status = builder.build(_files("a", "b", "c"), "LABEL", FileSystemType.JOLIET,
                               io.BytesIO(), progress_callback=progress.append)

        assert status is BuildStatus.COMPLETED
        assert progress == [pytest.approx(1 / 3), pytest.approx(2 / 3), 1.0, 1.0]
        assert progress == sorted(progress)
        assert sessions[0].added == ["a", "b", "c"]

    def test_empty_list_single_terminal_value(self):
        """测试空文件列表只报告一次 1.0"""
        builder, sessions = _builder_with_fake()
        progress = []
        output = io.BytesIO()

        status = builder.build([], "LABEL", FileSystemType.ISO9660, output, progress_callback=progress.append)

        assert status is BuildStatus.COMPLETED
        assert progress == [1.0]
        assert output.getvalue() == b"IMAGE"

    def test_without_callback(self):
        """测试不提供进度回调"""
        builder, sessions = _builder_with_fake()
        assert builder.build(_files("a"), "", FileSystemType.UDF, io.BytesIO()) is BuildStatus.COMPLETED
        assert sessions[0].filesystem is FileSystemType.UDF


class TestImageBuilderCancellation:
    """取消测试"""

    def test_cancel_before_start(self):
        """测试开始前取消：不添加任何文件，不写出镜像"""
        builder, sessions = _builder_with_fake()
        token = CancellationToken()
        token.cancel()
        progress = []
        output = io.BytesIO()

        status = builder.build(_files("a", "b"), "LABEL", FileSystemType.JOLIET, output,
                               progress_callback=progress.append, cancel_token=token)

        assert status is BuildStatus.CANCELLED
        assert sessions[0].added == []
        assert builder.files_added == 0
        assert progress == []
        assert output.getvalue() == b""
        assert sessions[0].closed

    def test_cancel_during_build(self):
        """测试构建过程中取消：在下一个检查点生效"""
        builder, sessions = _builder_with_fake()
        token = CancellationToken()

        def cancel_after_first(fraction):
            token.cancel()

        status = builder.build(_files("a", "b", "c"), "LABEL", FileSystemType.JOLIET, io.BytesIO(),
                               progress_callback=cancel_after_first, cancel_token=token)

        assert status is BuildStatus.CANCELLED
        assert sessions[0].added == ["a"]
        assert not sessions[0].written
        assert sessions[0].closed

    def test_cancel_before_finalize(self):
        """测试最后一个文件之后取消：不写出镜像"""
        builder, sessions = _builder_with_fake()
        token = CancellationToken()

        def cancel_at_end(fraction):
            if fraction >= 1.0:
                token.cancel()

        status = builder.build(_files("a", "b"), "LABEL", FileSystemType.JOLIET, io.BytesIO(),
                               progress_callback=cancel_at_end, cancel_token=token)

        assert status is BuildStatus.CANCELLED
        assert sessions[0].added == ["a", "b"]
        assert not sessions[0].written


class TestImageBuilderFailure:
    """失败测试"""

    def test_io_error_propagates_and_closes_session(self):
        """测试读取失败抛出 ImageIOError 并释放会话"""
        builder, sessions = _builder_with_fake(fail_on="b")
        progress = []

        with pytest.raises(ImageIOError):
            builder.build(_files("a", "b", "c"), "LABEL", FileSystemType.JOLIET, io.BytesIO(),
                          progress_callback=progress.append)

        assert sessions[0].closed
        assert sessions[0].added == ["a"]
        assert progress == [pytest.approx(1 / 3)]

    def test_missing_source_file_with_real_session(self, tmp_path):
        """测试源文件在构建前被删除"""
        source = tmp_path / "gone.txt"
        files = [FileInfo(path=source, relative_path="gone.txt", size=0, mtime=0.0)]

        with pytest.raises(ImageIOError):
            ImageBuilder().build(files, "LABEL", FileSystemType.JOLIET, io.BytesIO())


class TestImageRoundTrip:
    """真实镜像往返测试"""

    @pytest.fixture
    def source_tree(self, tmp_path):
        source = tmp_path / "source"
        for relative in ["a.txt", "sub/b.txt", "sub/deeper/Long File Name.data"]:
            path = source / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(relative.encode("utf-8") * 100)
        return source

    def _build(self, source, tmp_path, filesystem):
        output = tmp_path / f"out_{filesystem.value}.iso"
        files = collect_files(source)
        with open(output, "wb") as stream:
            status = ImageBuilder().build(files, "test disc", filesystem, stream)
        assert status is BuildStatus.COMPLETED
        return output

    @pytest.mark.parametrize("filesystem", [FileSystemType.JOLIET, FileSystemType.UDF])
    def test_long_name_variants(self, source_tree, tmp_path, filesystem):
        """测试 Joliet 与 UDF 镜像保留原始文件名"""
        output = self._build(source_tree, tmp_path, filesystem)

        assert list_image_files(output) == ["a.txt", "sub/b.txt", "sub/deeper/Long File Name.data"]

    def test_iso9660_variant(self, source_tree, tmp_path):
        """测试纯 ISO 9660 镜像使用大写的规范化名称"""
        output = self._build(source_tree, tmp_path, FileSystemType.ISO9660)

        assert list_image_files(output) == ["A.TXT", "SUB/B.TXT", "SUB/DEEPER/LONG_FILE_NAME.DATA"]

    @pytest.mark.parametrize("filesystem", list(FileSystemType))
    def test_deep_directory_tree(self, tmp_path, filesystem):
        """测试超过 8 层目录的源树可以正常生成镜像"""
        source = tmp_path / "source"
        segments = [f"d{level}" for level in range(9)]
        deep_file = source.joinpath(*segments, "f.txt")
        deep_file.parent.mkdir(parents=True)
        deep_file.write_text("deep")

        output = self._build(source, tmp_path, filesystem)

        expected = "/".join(segments + ["f.txt"])
        if filesystem is FileSystemType.ISO9660:
            expected = expected.upper()
        assert list_image_files(output) == [expected]

    def test_volume_label(self, source_tree, tmp_path):
        """测试卷标写入主卷描述符"""
        output = self._build(source_tree, tmp_path, FileSystemType.JOLIET)
        assert read_volume_label(output) == "TEST_DISC"

    def test_empty_image(self, tmp_path):
        """测试空文件列表生成有效的空镜像"""
        output = tmp_path / "empty.iso"
        progress = []
        with open(output, "wb") as stream:
            status = ImageBuilder().build([], "", FileSystemType.JOLIET, stream, progress_callback=progress.append)

        assert status is BuildStatus.COMPLETED
        assert progress == [1.0]
        assert list_image_files(output) == []
        assert read_volume_label(output) == "CDROM"

    def test_session_counts(self, source_tree):
        """测试会话记录添加的文件和目录数量"""
        session = ImageSession("x", FileSystemType.UDF).open()
        try:
            for file_info in collect_files(source_tree):
                session.add_file(file_info)
            assert session.files_added == 3
            assert session.directories_added == 2
        finally:
            session.close()
        assert not session.is_open
