"""
Allow-list loading from CSV/Excel.
"""

import asyncio
import os

import pandas as pd
import pytest

from outreach.infrastructure.importer import AllowListProvider, clean_phone


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_clean_phone():
    assert clean_phone("+57 300-111-2233 ") == "573001112233"
    assert clean_phone("nan") == ""
    assert clean_phone(None) == ""


def test_reload_normalizes_formatted_number(tmp_path):
    path = _write(tmp_path / "contacts.csv", 'nombre,celular\nAna,"+57 300-111-2233 "\n')
    provider = AllowListProvider(path)

    assert provider.reload() == 1
    assert provider.contains("573001112233")


def test_alias_priority_per_row(tmp_path):
    path = _write(
        tmp_path / "contacts.csv",
        "Celular , numero,telefono\n"
        "3001112233,3009998877,\n"
        ",3002223344,3007776655\n"
        ",,3004445566\n",
    )
    provider = AllowListProvider(path)
    provider.reload()

    assert provider.contains("3001112233")
    assert not provider.contains("3009998877")
    assert provider.contains("3002223344")
    assert not provider.contains("3007776655")
    assert provider.contains("3004445566")
    assert provider.size == 3


def test_short_numbers_are_dropped(tmp_path):
    path = _write(tmp_path / "contacts.csv", "telefono\n300111223\n(300) 111-2233\n")
    provider = AllowListProvider(path)
    provider.reload()

    assert provider.size == 1
    assert provider.contains("3001112233")


def test_reload_replaces_stale_entries(tmp_path):
    path = _write(tmp_path / "contacts.csv", "celular\n3001112233\n")
    provider = AllowListProvider(path)
    provider.reload()
    assert provider.contains("3001112233")

    _write(path, "celular\n3005556677\n")
    provider.reload()

    assert provider.contains("3005556677")
    assert not provider.contains("3001112233")


def test_missing_file_keeps_previous_list(tmp_path):
    path = _write(tmp_path / "contacts.csv", "celular\n3001112233\n")
    provider = AllowListProvider(path)
    provider.reload()

    path.unlink()
    assert provider.reload() == 1
    assert provider.contains("3001112233")


def test_file_without_phone_column(tmp_path):
    path = _write(tmp_path / "contacts.csv", "nombre,email\nAna,ana@example.com\n")
    provider = AllowListProvider(path)

    assert provider.reload() == 0


def test_excel_source(tmp_path):
    path = tmp_path / "contacts.xlsx"
    pd.DataFrame({"Numero": ["300 111 2233", "12"]}).to_excel(path, index=False)
    provider = AllowListProvider(path)
    provider.reload()

    assert provider.size == 1
    assert provider.contains("3001112233")


def test_changed_tracks_mtime(tmp_path):
    path = _write(tmp_path / "contacts.csv", "celular\n3001112233\n")
    provider = AllowListProvider(path)

    assert provider.changed() is True
    assert provider.changed() is False

    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))
    assert provider.changed() is True


@pytest.mark.asyncio
async def test_watch_reloads_on_change(tmp_path):
    path = _write(tmp_path / "contacts.csv", "celular\n3001112233\n")
    provider = AllowListProvider(path)
    provider.reload()

    task = asyncio.create_task(provider.watch(interval=0.01))
    await asyncio.sleep(0.05)

    _write(path, "celular\n3005556677\n")
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    for _ in range(100):
        await asyncio.sleep(0.02)
        if provider.contains("3005556677"):
            break

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert provider.contains("3005556677")
    assert not provider.contains("3001112233")
