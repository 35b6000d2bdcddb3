import os
import shutil

import pytest

from outreach.infrastructure.whatsapp import SessionFolderError, ensure_session_folder


def test_missing_folder_is_created(tmp_path):
    folder = tmp_path / "profile"

    assert ensure_session_folder(folder) is False
    assert folder.is_dir()


def test_healthy_folder_is_kept(tmp_path):
    folder = tmp_path / "profile"
    folder.mkdir()
    (folder / "Cookies").write_text("x")

    assert ensure_session_folder(folder) is False
    assert (folder / "Cookies").exists()


def test_unwritable_folder_is_deleted(tmp_path, monkeypatch):
    folder = tmp_path / "profile"
    folder.mkdir()
    monkeypatch.setattr(os, "access", lambda path, mode: False)

    assert ensure_session_folder(folder) is True
    assert not folder.exists()


def test_file_in_place_of_folder_is_deleted(tmp_path):
    folder = tmp_path / "profile"
    folder.write_text("not a folder")

    assert ensure_session_folder(folder) is True
    assert not folder.exists()


def test_undeletable_folder_raises(tmp_path, monkeypatch):
    folder = tmp_path / "profile"
    folder.mkdir()
    monkeypatch.setattr(os, "access", lambda path, mode: False)

    def refuse(path):
        raise PermissionError("locked")

    monkeypatch.setattr(shutil, "rmtree", refuse)

    with pytest.raises(SessionFolderError):
        ensure_session_folder(folder)
