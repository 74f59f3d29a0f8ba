"""Tests for the archive writers (ztr.archive)."""
import tarfile
import zipfile
from pathlib import Path
from typing import Dict

import py7zr
import pytest

from ztr.archive import (
    WRITERS,
    ArchiveError,
    ArchiveTarget,
    LoggingProgress,
    ProgressCounter,
    RelativePathError,
    SevenZipArchiveWriter,
    TarGzArchiveWriter,
    ZipArchiveWriter,
    create_writer,
    relative_archive_name,
    write_archive,
)
from ztr.core.constants import ArchiveFormat, ErrorCode

ALL_FORMATS = [ArchiveFormat.ZIP, ArchiveFormat.TAR_GZ, ArchiveFormat.SEVEN_Z]


def read_archive(path: Path, archive_format: ArchiveFormat, tmp_path: Path) -> Dict[str, bytes]:
    """Extract an archive into memory as {member name: content}."""
    if archive_format is ArchiveFormat.ZIP:
        with zipfile.ZipFile(path) as zf:
            return {name: zf.read(name) for name in zf.namelist()}

    if archive_format is ArchiveFormat.TAR_GZ:
        with tarfile.open(path, "r:gz") as tar:
            return {
                member.name: tar.extractfile(member).read()
                for member in tar.getmembers()
                if member.isfile()
            }

    out = tmp_path / "extracted"
    out.mkdir()
    with py7zr.SevenZipFile(path, mode="r") as archive:
        archive.extractall(path=out)
    return {
        p.relative_to(out).as_posix(): p.read_bytes() for p in sorted(out.rglob("*")) if p.is_file()
    }


def simple_files(base: Path):
    return [base / "a.txt", base / "sub" / "b.txt"]


class TestRelativeArchiveName:
    """Tests for member name computation."""

    def test_forward_slash_names(self, tmp_path):
        """Member names are relative and use /."""
        assert relative_archive_name(tmp_path / "sub" / "b.txt", tmp_path) == "sub/b.txt"

    def test_path_outside_base(self, tmp_path):
        """A file outside the base directory is rejected."""
        with pytest.raises(RelativePathError) as exc_info:
            relative_archive_name(tmp_path.parent / "elsewhere.txt", tmp_path)
        assert exc_info.value.error_code == ErrorCode.INTERNAL_ERROR
        assert isinstance(exc_info.value, ArchiveError)

    def test_base_itself(self, tmp_path):
        """The base directory is not a member."""
        with pytest.raises(RelativePathError):
            relative_archive_name(tmp_path, tmp_path)


class TestArchiveTarget:
    """Tests for output path selection."""

    @pytest.mark.parametrize(
        "archive_format,name",
        [
            (ArchiveFormat.ZIP, "proj.zip"),
            (ArchiveFormat.TAR_GZ, "proj.tar.gz"),
            (ArchiveFormat.SEVEN_Z, "proj.7z"),
        ],
    )
    def test_for_directory(self, tmp_path, archive_format, name):
        """The output path is {base_dir}/{output_name}.{ext}."""
        target = ArchiveTarget.for_directory(tmp_path, "proj", archive_format)
        assert target.output_path == tmp_path / name
        assert target.format is archive_format


class TestRoundTrip:
    """Tests that archived content comes back unchanged."""

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_two_files_round_trip(self, simple_dir, tmp_path, archive_format):
        """a.txt and sub/b.txt come back with identical names and bytes."""
        target = ArchiveTarget.for_directory(tmp_path / "out", "simple", archive_format)
        target.output_path.parent.mkdir()

        result = write_archive(simple_files(simple_dir), simple_dir, target)

        assert result.output_path == target.output_path
        assert result.archive_format is archive_format
        assert result.entry_count == 2
        assert result.size_bytes == target.output_path.stat().st_size > 0
        contents = read_archive(target.output_path, archive_format, tmp_path)
        assert contents == {"a.txt": b"hello", "sub/b.txt": b"world"}

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_binary_content_preserved(self, make_tree, tmp_path, archive_format):
        """Arbitrary bytes survive unchanged."""
        base = make_tree({}, root_name="binary")
        payload = bytes(range(256)) * 64
        (base / "blob.bin").write_bytes(payload)
        target = ArchiveTarget.for_directory(tmp_path / "out", "blob", archive_format)
        target.output_path.parent.mkdir()

        write_archive([base / "blob.bin"], base, target)

        assert read_archive(target.output_path, archive_format, tmp_path) == {
            "blob.bin": payload
        }

    def test_zip_members_keep_walk_order(self, make_tree, tmp_path):
        """Entries are written in the order given."""
        base = make_tree({"b.txt": "b", "a.txt": "a", "c/d.txt": "d"})
        target = ArchiveTarget.for_directory(tmp_path, "ordered", ArchiveFormat.ZIP)
        write_archive([base / "b.txt", base / "a.txt", base / "c" / "d.txt"], base, target)
        with zipfile.ZipFile(target.output_path) as zf:
            assert zf.namelist() == ["b.txt", "a.txt", "c/d.txt"]

    def test_tar_has_no_directory_members(self, simple_dir, tmp_path):
        """Only files are stored in the tar stream."""
        target = ArchiveTarget.for_directory(tmp_path, "flat", ArchiveFormat.TAR_GZ)
        write_archive(simple_files(simple_dir), simple_dir, target)
        with tarfile.open(target.output_path, "r:gz") as tar:
            assert [m.name for m in tar.getmembers()] == ["a.txt", "sub/b.txt"]
            assert all(m.isfile() for m in tar.getmembers())

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_empty_file_list_writes_empty_container(self, simple_dir, tmp_path, archive_format):
        """Writers accept an empty list and produce a valid empty archive."""
        target = ArchiveTarget.for_directory(tmp_path, "empty", archive_format)
        result = write_archive([], simple_dir, target)
        assert result.entry_count == 0
        assert read_archive(target.output_path, archive_format, tmp_path) == {}

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_zero_byte_file_round_trip(self, make_tree, tmp_path, archive_format):
        """An empty file is stored as an empty member."""
        base = make_tree({"empty.txt": "", "full.txt": "data"}, root_name="sparse")
        target = ArchiveTarget.for_directory(tmp_path / "out", "sparse", archive_format)
        target.output_path.parent.mkdir()

        result = write_archive([base / "empty.txt", base / "full.txt"], base, target)

        assert result.entry_count == 2
        assert read_archive(target.output_path, archive_format, tmp_path) == {
            "empty.txt": b"",
            "full.txt": b"data",
        }


class TestFailureCleanup:
    """Tests that a failed write leaves no archive behind."""

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_missing_source_removes_partial_output(self, simple_dir, tmp_path, archive_format):
        """A file vanishing mid-run aborts and deletes the output."""
        target = ArchiveTarget.for_directory(tmp_path, "broken", archive_format)
        files = [simple_dir / "a.txt", simple_dir / "gone.txt", simple_dir / "sub" / "b.txt"]
        progress = ProgressCounter()

        with pytest.raises(ArchiveError) as exc_info:
            write_archive(files, simple_dir, target, progress=progress)

        assert "gone.txt" in str(exc_info.value)
        assert not target.output_path.exists()
        assert progress.finished is True
        assert progress.success is False
        assert progress.entries == ["a.txt"]

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_failed_rerun_keeps_previous_archive(self, simple_dir, tmp_path, archive_format):
        """An archive from an earlier run survives a failed write to the same path."""
        target = ArchiveTarget.for_directory(tmp_path / "out", "kept", archive_format)
        target.output_path.parent.mkdir()
        write_archive(simple_files(simple_dir), simple_dir, target)
        before = target.output_path.read_bytes()

        with pytest.raises(ArchiveError):
            write_archive([simple_dir / "a.txt", simple_dir / "gone.txt"], simple_dir, target)

        assert target.output_path.read_bytes() == before
        assert not target.working_path.exists()
        contents = read_archive(target.output_path, archive_format, tmp_path)
        assert contents == {"a.txt": b"hello", "sub/b.txt": b"world"}

    def test_success_leaves_no_working_file(self, simple_dir, tmp_path):
        """The in-progress file is renamed onto the output path."""
        target = ArchiveTarget.for_directory(tmp_path, "done", ArchiveFormat.TAR_GZ)
        write_archive(simple_files(simple_dir), simple_dir, target)
        assert target.output_path.exists()
        assert not target.working_path.exists()
        assert target.working_path.name == "done.tar.gz.tmp"

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_add_entry_before_start(self, simple_dir, tmp_path, archive_format):
        """Adding an entry to a writer that was never started is an ArchiveError."""
        target = ArchiveTarget.for_directory(tmp_path, "unstarted", archive_format)
        writer = create_writer(target)

        with pytest.raises(ArchiveError, match="start\\(\\) must be called") as exc_info:
            writer.add_entry("a.txt", simple_dir / "a.txt")

        assert exc_info.value.error_code == ErrorCode.INTERNAL_ERROR
        assert exc_info.value.path == target.output_path
        assert not target.output_path.exists()

    def test_file_outside_base_aborts(self, simple_dir, tmp_path):
        """A relative-path failure aborts the run instead of skipping the file."""
        outsider = tmp_path / "outside.txt"
        outsider.write_text("x")
        target = ArchiveTarget.for_directory(tmp_path, "bad", ArchiveFormat.ZIP)

        with pytest.raises(RelativePathError):
            write_archive([simple_dir / "a.txt", outsider], simple_dir, target)

        assert not target.output_path.exists()

    def test_unwritable_output_directory(self, simple_dir, tmp_path):
        """Failure to create the container is an ArchiveError."""
        target = ArchiveTarget(ArchiveFormat.ZIP, tmp_path / "no" / "such" / "dir" / "x.zip")
        with pytest.raises(ArchiveError):
            write_archive(simple_files(simple_dir), simple_dir, target)

    def test_writer_rejects_other_formats(self, tmp_path):
        """A writer only accepts targets of its own format."""
        target = ArchiveTarget.for_directory(tmp_path, "x", ArchiveFormat.TAR_GZ)
        with pytest.raises(ArchiveError) as exc_info:
            ZipArchiveWriter(target)
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT


class TestProgress:
    """Tests for progress events."""

    def test_counter_records_events(self, simple_dir, tmp_path):
        """Total, per-entry increments and the final size are reported."""
        target = ArchiveTarget.for_directory(tmp_path, "p", ArchiveFormat.ZIP)
        progress = ProgressCounter()

        write_archive(simple_files(simple_dir), simple_dir, target, progress=progress)

        assert progress.total == 2
        assert progress.processed == 2
        assert progress.entries == ["a.txt", "sub/b.txt"]
        assert progress.success is True
        assert progress.size_bytes == target.output_path.stat().st_size

    def test_logging_progress(self, simple_dir, tmp_path, quiet_logger):
        """LoggingProgress works as a drop-in listener."""
        target = ArchiveTarget.for_directory(tmp_path, "logged", ArchiveFormat.TAR_GZ)
        progress = LoggingProgress(quiet_logger, every=1)
        result = write_archive(simple_files(simple_dir), simple_dir, target, progress=progress)
        assert result.entry_count == 2


class TestFactory:
    """Tests for writer selection."""

    def test_one_writer_per_format(self):
        """Every format has a writer."""
        assert set(WRITERS) == set(ArchiveFormat)
        assert WRITERS[ArchiveFormat.ZIP] is ZipArchiveWriter
        assert WRITERS[ArchiveFormat.TAR_GZ] is TarGzArchiveWriter
        assert WRITERS[ArchiveFormat.SEVEN_Z] is SevenZipArchiveWriter

    @pytest.mark.parametrize("archive_format", ALL_FORMATS, ids=lambda f: f.value)
    def test_create_writer(self, tmp_path, archive_format):
        """create_writer returns the matching writer class."""
        target = ArchiveTarget.for_directory(tmp_path, "x", archive_format)
        writer = create_writer(target)
        assert isinstance(writer, WRITERS[archive_format])
        assert writer.output_path == target.output_path
        assert writer.entry_count == 0

    def test_compression_level_option(self, simple_dir, tmp_path):
        """Writer options are passed through create_writer."""
        target = ArchiveTarget.for_directory(tmp_path, "stored", ArchiveFormat.ZIP)
        create_writer(target, compression_level=0).write(simple_files(simple_dir), simple_dir)
        with zipfile.ZipFile(target.output_path) as zf:
            assert zf.read("a.txt") == b"hello"
