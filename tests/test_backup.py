"""Tests for the backup coordinator and the per-file state machine."""

import pytest

from python_docx_fill.backup import BackupCoordinator, FileJob, FileState, backup_path_for
from python_docx_fill.errors import TemplateNotFoundError


class TestFileJob:
    """Tests for state transitions."""

    def test_happy_path_with_backup(self):
        job = FileJob("a.docx")
        for state in (
            FileState.BACKED_UP,
            FileState.APPLYING,
            FileState.COMMITTED,
            FileState.CLEANED,
        ):
            job.advance(state)
        assert job.state is FileState.CLEANED
        assert job.history[0] is FileState.PENDING

    def test_apply_without_backup(self):
        job = FileJob("a.docx")
        job.advance(FileState.APPLYING)
        job.advance(FileState.ROLLED_BACK)
        job.advance(FileState.CLEANED)
        assert job.history == [
            FileState.PENDING,
            FileState.APPLYING,
            FileState.ROLLED_BACK,
            FileState.CLEANED,
        ]

    @pytest.mark.parametrize(
        "path",
        [
            [FileState.COMMITTED],
            [FileState.APPLYING, FileState.CLEANED],
            [FileState.APPLYING, FileState.COMMITTED, FileState.ROLLED_BACK],
        ],
    )
    def test_illegal_transitions(self, path):
        job = FileJob("a.docx")
        with pytest.raises(RuntimeError, match="Illegal state transition"):
            for state in path:
                job.advance(state)

    def test_cleaned_is_terminal(self):
        job = FileJob("a.docx")
        job.advance(FileState.APPLYING)
        job.advance(FileState.COMMITTED)
        job.advance(FileState.CLEANED)
        with pytest.raises(RuntimeError):
            job.advance(FileState.APPLYING)


class TestBackupPathFor:
    def test_first_free_name(self, tmp_path):
        source = tmp_path / "report.docx"
        assert backup_path_for(source, ".bak") == tmp_path / "report.docx.bak"

    def test_numbered_when_taken(self, tmp_path):
        source = tmp_path / "report.docx"
        (tmp_path / "report.docx.bak").write_bytes(b"")
        (tmp_path / "report.docx.bak.1").write_bytes(b"")
        assert backup_path_for(source, ".bak") == tmp_path / "report.docx.bak.2"


class TestBackupCoordinator:
    """Tests for creating, restoring and cleaning up backups."""

    def test_backup_is_byte_identical(self, tmp_path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"original bytes")
        coordinator = BackupCoordinator()
        backup = coordinator.backup(source)
        assert backup == str(tmp_path / "a.docx.backup")
        assert (tmp_path / "a.docx.backup").read_bytes() == b"original bytes"

    def test_backup_is_idempotent(self, tmp_path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"x")
        coordinator = BackupCoordinator()
        assert coordinator.backup(source) == coordinator.backup(source)
        assert not (tmp_path / "a.docx.backup.1").exists()

    def test_restore(self, tmp_path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"before")
        coordinator = BackupCoordinator()
        coordinator.backup(source)
        source.write_bytes(b"after")

        assert coordinator.restore(source)
        assert source.read_bytes() == b"before"

    def test_restore_without_backup(self, tmp_path):
        assert not BackupCoordinator().restore(tmp_path / "a.docx")

    def test_cleanup_deletes(self, tmp_path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"x")
        coordinator = BackupCoordinator()
        coordinator.backup(source)
        assert coordinator.cleanup(source) is None
        assert not (tmp_path / "a.docx.backup").exists()
        assert coordinator.backup_for(source) is None

    def test_cleanup_retains(self, tmp_path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"x")
        coordinator = BackupCoordinator(retain=True)
        backup = coordinator.backup(source)
        assert coordinator.cleanup(source) == backup
        assert (tmp_path / "a.docx.backup").exists()

    def test_disabled(self, tmp_path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"x")
        coordinator = BackupCoordinator(enabled=False)
        assert coordinator.backup(source) is None
        assert list(tmp_path.iterdir()) == [source]

    def test_backup_missing_source(self, tmp_path):
        with pytest.raises(TemplateNotFoundError):
            BackupCoordinator().backup(tmp_path / "missing.docx")

    def test_backup_all_collects_failures(self, tmp_path):
        good = tmp_path / "a.docx"
        good.write_bytes(b"x")
        result = BackupCoordinator(retain=True).backup_all([good, tmp_path / "missing.docx"])
        assert list(result.backups) == [str(good)]
        assert len(result.failures) == 1
        assert not result.is_successful
        assert str(result) == "Created 1 backups, 1 failed"
