"""
Tests for the command line interface.
"""
import json
import zipfile
from datetime import datetime

import pytest

import main as launcher
from datcheck.cli import default_audit_name, files_in_directory, main


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'use_colors': False,
        'hash_cache_path': str(tmp_path / 'cache.db'),
    }), encoding='utf-8')
    return str(path)


@pytest.fixture
def run(config_file, datfile):
    """Run the CLI with the fixture config and datfile."""
    def _run(*args, datfile_arg=True):
        argv = ['--config', config_file]
        if datfile_arg:
            argv += ['-d', datfile]
        return main(argv + list(args))
    return _run


def test_check_reports_files_and_sets(run, roms, digest, write_file, capsys):
    paths = [write_file('a.bin', roms['a.bin']), write_file('x.bin', roms['b.bin'])]

    assert run('check', *paths) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == '--FILES--'
    assert set(lines[1:3]) == {
        f"[ OK ] {digest(roms['a.bin'])} a.bin",
        f"[WARN] {digest(roms['b.bin'])} x.bin - misnamed, should be b.bin",
    }
    assert lines[3:] == ['--SETS--', '[ OK ]  G', '1 complete, 0 partial, 0 missing']


def test_check_defaults_to_current_directory(run, roms, write_file, files_dir, monkeypatch, capsys):
    write_file('c.bin', roms['c.bin'])
    write_file('.hidden', roms['a.bin'])
    monkeypatch.chdir(files_dir)

    assert run('check') == 0

    out = capsys.readouterr().out
    assert '[ OK ]  H' in out
    assert '.hidden' not in out


def test_check_all_sets_sorted(run, roms, write_file, capsys):
    assert run('check', '-a', '-s', '--show', 'sets', write_file('c.bin', roms['c.bin'])) == 0
    assert capsys.readouterr().out.splitlines() == [
        '--SETS--',
        '[MISS]  Dup1',
        '[MISS]  Dup2',
        '[MISS]  G',
        '[ OK ]  H',
        '1 complete, 0 partial, 3 missing',
    ]


def test_check_with_method_and_exclude(run, roms, digest, write_file, capsys):
    paths = [write_file('c.bin', roms['c.bin']), write_file('notes.txt', b'hello')]
    assert run('check', '-m', 'crc', '-e', 'txt', '--show', 'roms', *paths) == 0
    assert capsys.readouterr().out.splitlines() == [
        '--FILES--',
        f"[ OK ] {digest(roms['c.bin'], 'crc')} c.bin",
    ]


def test_check_rename(run, roms, write_file, files_dir):
    path = write_file('x.bin', roms['b.bin'])
    assert run('check', '-r', path) == 0
    assert (files_dir / 'b.bin').exists()


def test_check_output_file(run, roms, write_file, tmp_path, capsys):
    report = tmp_path / 'report.txt'
    assert run('check', '-o', str(report), write_file('c.bin', roms['c.bin'])) == 0

    assert '[ OK ]  H' in report.read_text(encoding='utf-8')
    captured = capsys.readouterr()
    assert captured.out == ''
    assert 'Report written to' in captured.err


def test_unwritable_output_is_fatal(run, roms, write_file, tmp_path, capsys):
    blocker = tmp_path / 'blocker'
    blocker.write_bytes(b'')
    assert run('check', '-o', str(blocker / 'r.txt'), write_file('c.bin', roms['c.bin'])) == 1
    assert 'Cannot create output file' in capsys.readouterr().err


def test_missing_datfile_is_fatal(config_file, tmp_path, capsys):
    assert main(['--config', config_file, '-d', str(tmp_path / 'nope.dat'), 'check']) == 1
    assert 'Cannot load datfile' in capsys.readouterr().err


def test_no_datfile_given(run, capsys):
    assert run('lookup', 'a.bin', datfile_arg=False) == 1
    assert 'no datfile given' in capsys.readouterr().err


def test_default_datfile_from_config(tmp_path, datfile, capsys):
    path = tmp_path / 'with-dat.json'
    path.write_text(json.dumps({'default_datfile': datfile, 'use_colors': False}), encoding='utf-8')
    assert main(['--config', str(path), 'lookup', '-x', 'c.bin']) == 0
    assert capsys.readouterr().out.startswith('name: c.bin\n')


def test_check_with_hash_cache(run, roms, write_file, capsys):
    path = write_file('c.bin', roms['c.bin'])
    assert run('check', '--cache', path) == 0
    assert run('check', '--cache', path) == 0
    capsys.readouterr()

    assert run('cache', 'stats', datfile_arg=False) == 0
    assert 'Cached digests:  1' in capsys.readouterr().out

    assert run('cache', 'clear', datfile_arg=False) == 0
    assert 'Removed 1 cached digests' in capsys.readouterr().err


def test_audit_writes_report(run, roms, write_file, files_dir, monkeypatch):
    write_file('c.bin', roms['c.bin'])
    write_file('readme.txt', b'not a rom')
    monkeypatch.chdir(files_dir)

    assert run('audit', 'report.log') == 0

    lines = (files_dir / 'report.log').read_text(encoding='utf-8').splitlines()
    assert lines[0] == '--FILES--'
    assert not any('readme.txt' in line for line in lines)
    assert lines[-5:] == ['[MISS]  Dup1', '[MISS]  Dup2', '[MISS]  G', '[ OK ]  H',
                          '1 complete, 0 partial, 3 missing']


def test_default_audit_name():
    assert default_audit_name(datetime(2024, 1, 2, 3, 4, 5)) == 'audit_2024-01-02_03-04-05.txt'


def test_lookup_modes(run, roms, digest, capsys):
    assert run('lookup', '-k', 'crc', digest(roms['c.bin'], 'crc').upper(), 'a.bin', '-x') == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == 'name: c.bin'
    assert '----' in lines
    assert lines[lines.index('----') + 1:] == []

    assert run('lookup', '-m', 'game', 'Dup') == 0
    out = capsys.readouterr().out
    assert 'name: Dup1' in out and 'name: Dup2' in out


def test_zip_command(run, roms, write_file, tmp_path, capsys):
    outdir = tmp_path / 'sets'
    paths = [write_file('a.bin', roms['a.bin']), write_file('b.bin', roms['b.bin'])]

    assert run('zip', '-o', str(outdir), '-m', *paths) == 0

    with zipfile.ZipFile(outdir / 'G.zip') as zf:
        assert sorted(zf.namelist()) == ['a.bin', 'b.bin']
    assert 'Wrote' in capsys.readouterr().err
    assert files_in_directory(str(tmp_path / 'files')) == []


def test_invalid_worker_count_is_rejected(run):
    with pytest.raises(SystemExit) as exc:
        run('check', '-w', '0')
    assert exc.value.code == 2


def test_no_command_prints_help(run, capsys):
    assert run(datfile_arg=False) == 0
    assert 'usage:' in capsys.readouterr().out


def test_launcher_version_and_check(capsys):
    assert launcher.main(['--version']) == 0
    assert 'DatCheck v' in capsys.readouterr().out

    assert launcher.main(['--check']) == 0
    assert '[OK] SQLAlchemy' in capsys.readouterr().out
