"""
Tests for zipping complete sets.
"""
import subprocess
import zipfile

import pytest

from datcheck.core.exceptions import OutputError
from datcheck.core.packager import SetPackager


def test_complete_game_is_zipped(catalog, roms, write_file, tmp_path):
    paths = [write_file('a.bin', roms['a.bin']), write_file('b.bin', roms['b.bin']),
             write_file('c.bin', b'bad dump')]
    outdir = tmp_path / 'sets'

    packaged = SetPackager(catalog, output_dir=str(outdir)).run(paths)

    assert [item.game.name for item in packaged] == ['G']
    with zipfile.ZipFile(outdir / 'G.zip') as zf:
        assert zf.namelist() == ['a.bin', 'b.bin']
        assert zf.read('b.bin') == roms['b.bin']
        assert zf.getinfo('a.bin').compress_type == zipfile.ZIP_DEFLATED
    assert not (outdir / 'H.zip').exists()
    # Loose files are kept unless asked otherwise
    assert all(p.endswith('.bin') for p in packaged[0].files)
    assert (tmp_path / 'files' / 'a.bin').exists()


def test_misnamed_files_are_not_packaged(catalog, roms, write_file, tmp_path):
    paths = [write_file('a.bin', roms['a.bin']), write_file('x.bin', roms['b.bin'])]
    assert SetPackager(catalog, output_dir=str(tmp_path / 'out')).run(paths) == []
    assert not (tmp_path / 'out').exists()


def test_remove_deletes_packaged_files(catalog, roms, write_file, files_dir, tmp_path):
    path = write_file('c.bin', roms['c.bin'])
    other = write_file('a.bin', roms['a.bin'])

    packaged = SetPackager(catalog, output_dir=str(tmp_path / 'out'), remove=True).run([path, other])

    assert packaged[0].removed == [path]
    assert not (files_dir / 'c.bin').exists()
    assert (files_dir / 'a.bin').exists()


def test_shared_rom_completes_both_games(catalog, roms, write_file, tmp_path):
    packaged = SetPackager(catalog, output_dir=str(tmp_path)).run(
        [write_file('shared.bin', roms['shared.bin'])])
    assert sorted(item.game.name for item in packaged) == ['Dup1', 'Dup2']


def test_existing_archive_is_not_overwritten(catalog, roms, write_file, tmp_path):
    (tmp_path / 'H.zip').write_bytes(b'keep me')
    packaged = SetPackager(catalog, output_dir=str(tmp_path)).run([write_file('c.bin', roms['c.bin'])])
    assert packaged == []
    assert (tmp_path / 'H.zip').read_bytes() == b'keep me'


def test_output_directory_error(catalog, roms, write_file, tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_bytes(b'')
    with pytest.raises(OutputError):
        SetPackager(catalog, output_dir=str(blocker / 'sets')).run([write_file('c.bin', roms['c.bin'])])


def test_infozip_runs_external_tool(catalog, roms, write_file, tmp_path, monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')

    monkeypatch.setattr(subprocess, 'run', fake_run)
    path = write_file('c.bin', roms['c.bin'])

    packaged = SetPackager(catalog, output_dir=str(tmp_path), use_infozip=True).run([path])

    assert calls == [['zip', '-j', str(tmp_path / 'H.zip'), path]]
    assert packaged[0].zip_path == str(tmp_path / 'H.zip')


def test_infozip_failure_keeps_loose_files(catalog, roms, write_file, tmp_path, monkeypatch):
    monkeypatch.setattr(subprocess, 'run', lambda cmd, **kwargs: subprocess.CompletedProcess(
        cmd, 12, stdout='', stderr='zip error'))
    path = write_file('c.bin', roms['c.bin'])

    packaged = SetPackager(catalog, output_dir=str(tmp_path), use_infozip=True, remove=True).run([path])

    assert packaged == []
    assert (tmp_path / 'files' / 'c.bin').exists()
