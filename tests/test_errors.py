"""Tests for error classification."""

import zipfile

import pytest

from python_docx_fill.errors import (
    DocxFillError,
    ErrorKind,
    FileAccessError,
    FileOperation,
    OperationTimeoutError,
    PackageCorruptError,
    TemplateNotFoundError,
    UnexpectedError,
    UnmappedPlaceholderError,
    is_critical,
    wrap_exception,
)


class TestDocxFillError:
    def test_message_includes_context_and_path(self):
        error = DocxFillError("boom", context="file reading", file_path="/tmp/a.docx")
        assert str(error) == "file reading: boom [/tmp/a.docx]"
        assert error.message == "boom"

    def test_unmapped_lists_names(self):
        error = UnmappedPlaceholderError(["A", "B"])
        assert error.names == ["A", "B"]
        assert "A, B" in str(error)
        assert error.kind is ErrorKind.UNMAPPED_PLACEHOLDER


class TestWrapException:
    """Tests for mapping arbitrary exceptions onto engine errors."""

    def test_engine_errors_unchanged(self):
        error = PackageCorruptError("bad")
        assert wrap_exception(error, "ctx") is error

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (FileNotFoundError(2, "No such file", "a.docx"), TemplateNotFoundError),
            (PermissionError(13, "Denied", "a.docx"), FileAccessError),
            (zipfile.BadZipFile("bad"), PackageCorruptError),
            (TimeoutError(), OperationTimeoutError),
            (OSError("disk full"), FileAccessError),
            (ValueError("odd"), UnexpectedError),
        ],
    )
    def test_classification(self, exc, expected):
        wrapped = wrap_exception(exc, "file reading", "a.docx")
        assert type(wrapped) is expected
        assert wrapped.file_path == "a.docx"
        assert wrapped.context == "file reading"

    def test_permission_error_records_operation(self):
        wrapped = wrap_exception(
            PermissionError(13, "Denied", "a.docx"), "backup", "a.docx", FileOperation.CREATE
        )
        assert wrapped.operation is FileOperation.CREATE
        assert "create" in wrapped.message


class TestIsCritical:
    def test_memory_error(self):
        assert is_critical(MemoryError())

    def test_ordinary_errors(self):
        assert not is_critical(ValueError())
        assert not is_critical(PackageCorruptError("x"))

    def test_flagged_engine_error(self):
        assert is_critical(UnexpectedError(MemoryError(), critical=True))
