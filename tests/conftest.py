"""
Shared fixtures: small datfiles and the rom contents they describe.
"""
import hashlib
import zipfile
import zlib
from xml.sax.saxutils import quoteattr

import pytest

from datcheck.core.catalog import load_datfile


ROMS = {
    'a.bin': b'alpha' * 100,
    'b.bin': b'bravo' * 200,
    'c.bin': b'charlie' * 50,
    'shared.bin': b'shared' * 10,
}


def digest_of(data: bytes, algorithm: str = 'sha1') -> str:
    if algorithm == 'crc':
        return f"{zlib.crc32(data) & 0xFFFFFFFF:08x}"
    return hashlib.new(algorithm, data).hexdigest()


def rom_element(name: str, data: bytes) -> str:
    # Uppercase digests, as many datfiles store them
    return (f'<rom name={quoteattr(name)} size="{len(data)}" '
            f'crc="{digest_of(data, "crc").upper()}" '
            f'md5="{digest_of(data, "md5").upper()}" '
            f'sha1="{digest_of(data, "sha1").upper()}"/>')


def build_datfile(games) -> str:
    """games: list of (element, game name, [(rom name, data), ...])"""
    parts = [
        '<?xml version="1.0"?>',
        '<datafile>',
        '<header><name>Test Dat</name><description>Fixture datfile</description>'
        '<version>1</version></header>',
    ]
    for element, game_name, roms in games:
        parts.append(f'<{element} name={quoteattr(game_name)}>')
        parts.append(f'<description>{game_name} description</description>')
        for rom_name, data in roms:
            parts.append(rom_element(rom_name, data))
        parts.append(f'</{element}>')
    parts.append('</datafile>')
    return '\n'.join(parts)


SAMPLE_GAMES = [
    ('game', 'G', [('a.bin', ROMS['a.bin']), ('b.bin', ROMS['b.bin'])]),
    ('game', 'H', [('c.bin', ROMS['c.bin'])]),
    ('machine', 'Dup1', [('shared.bin', ROMS['shared.bin'])]),
    ('game', 'Dup2', [('shared.bin', ROMS['shared.bin'])]),
]


@pytest.fixture
def roms():
    return dict(ROMS)


@pytest.fixture
def digest():
    return digest_of


@pytest.fixture
def make_datfile(tmp_path):
    """Factory writing a datfile from (element, name, roms) tuples."""
    def _make(games, name='test.dat'):
        path = tmp_path / name
        path.write_text(build_datfile(games), encoding='utf-8')
        return str(path)
    return _make


@pytest.fixture
def datfile(make_datfile):
    return make_datfile(SAMPLE_GAMES)


@pytest.fixture
def catalog(datfile):
    return load_datfile(datfile)


@pytest.fixture
def files_dir(tmp_path):
    directory = tmp_path / 'files'
    directory.mkdir()
    return directory


@pytest.fixture
def write_file(files_dir):
    """Write a loose file into files_dir and return its path."""
    def _write(name, data):
        path = files_dir / name
        path.write_bytes(data)
        return str(path)
    return _write


@pytest.fixture
def write_zip(files_dir):
    """Write a zip archive of (member name, data) pairs into files_dir."""
    def _write(name, members):
        path = files_dir / name
        with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as zf:
            for member_name, data in members:
                zf.writestr(member_name, data)
        return str(path)
    return _write
