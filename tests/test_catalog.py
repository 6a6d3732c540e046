"""
Tests for datfile loading and catalog lookups.
"""
import xml.etree.ElementTree as ET

import pytest

from datcheck.core.catalog import load_datfile, normalise_digest, parse_datfile
from datcheck.core.exceptions import CatalogError


def test_load_counts_and_header(catalog, datfile):
    assert catalog.game_count == 4
    assert catalog.entry_count == 5
    assert catalog.header['name'] == 'Test Dat'
    assert catalog.source == datfile


def test_games_keep_datfile_order(catalog):
    names = [game.name for game in catalog.list_games()]
    assert names == ['G', 'H', 'Dup1', 'Dup2']
    assert catalog.list_games()[0].description == 'G description'


def test_machine_element_is_a_game(catalog):
    games = catalog.find_games_by_name('Dup1')
    assert len(games) == 1
    assert [entry.name for entry in games[0].entries] == ['shared.bin']


def test_digests_are_stored_lowercase(catalog, roms, digest):
    entry = catalog.find_by_name('a.bin')[0]
    assert entry.hash_for('sha1') == digest(roms['a.bin'])
    assert entry.hash_for('md5') == digest(roms['a.bin'], 'md5')
    assert entry.size == len(roms['a.bin'])


def test_find_by_hash_is_case_insensitive(catalog, roms, digest):
    upper = digest(roms['b.bin']).upper()
    found = catalog.find_by_hash('sha1', upper)
    assert [entry.name for entry in found] == ['b.bin']


def test_find_by_hash_unknown(catalog):
    assert catalog.find_by_hash('sha1', '0' * 40) == []
    assert catalog.find_by_hash('sha1', '') == []


def test_find_by_name_exact_and_substring(catalog):
    assert [e.name for e in catalog.find_by_name('a.bin')] == ['a.bin']
    assert catalog.find_by_name('a.b') == []
    assert sorted(e.name for e in catalog.find_by_name('.bin', exact=False)) == [
        'a.bin', 'b.bin', 'c.bin', 'shared.bin', 'shared.bin']


def test_duplicate_entries_stay_distinct(catalog):
    first, second = catalog.find_by_name('shared.bin')
    assert first != second
    assert first.hashes == second.hashes
    assert catalog.game_of(first).name == 'Dup1'
    assert catalog.game_of(second).name == 'Dup2'


def test_find_games_by_substring(catalog):
    assert [g.name for g in catalog.find_games_by_name('Dup', exact=False)] == ['Dup1', 'Dup2']
    assert catalog.find_games_by_name('Dup') == []


def test_child_entries_and_lookup_by_id(catalog):
    game = catalog.find_games_by_name('G')[0]
    children = catalog.child_entries(game)
    assert isinstance(children, frozenset)
    assert {entry.name for entry in children} == {'a.bin', 'b.bin'}
    for entry in children:
        assert catalog.get_entry(entry.entry_id) is entry


def test_crc_is_zero_padded():
    assert normalise_digest('crc', '1234ABC') == '01234abc'
    assert normalise_digest('sha1', ' ABC ') == 'abc'


def test_parse_sizes_and_missing_hashes():
    root = ET.fromstring(
        '<datafile>'
        '<game name="X">'
        '<rom name="hex.bin" size="0x10" crc="abc"/>'
        '<rom name="bad.bin" size="big"/>'
        '</game>'
        '</datafile>'
    )
    catalog = parse_datfile(root)
    hex_entry, bad_entry = catalog.list_games()[0].entries
    assert hex_entry.size == 16
    assert hex_entry.hash_for('crc') == '00000abc'
    assert hex_entry.hash_for('sha1') == ''
    assert bad_entry.size is None
    assert catalog.find_by_hash('crc', 'ABC') == [hex_entry]


def test_missing_datfile(tmp_path):
    with pytest.raises(CatalogError, match='file not found'):
        load_datfile(str(tmp_path / 'nope.dat'))


def test_malformed_datfile(tmp_path):
    path = tmp_path / 'broken.dat'
    path.write_text('<datafile><game name="x">', encoding='utf-8')
    with pytest.raises(CatalogError, match='malformed XML'):
        load_datfile(str(path))


def test_wrong_root_element(tmp_path):
    path = tmp_path / 'other.xml'
    path.write_text('<catalog/>', encoding='utf-8')
    with pytest.raises(CatalogError, match='unexpected root'):
        load_datfile(str(path))
