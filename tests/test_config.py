"""
Tests for JSON configuration and user data paths.
"""
import json

import pytest

from datcheck.core import config as config_module
from datcheck.core.config import DEFAULT_CONFIG, Config, get_config
from datcheck.core.paths import Paths


@pytest.fixture
def user_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(Paths, '_user_data_dir', str(tmp_path / 'userdata'))
    return tmp_path / 'userdata'


def test_defaults_without_file(tmp_path):
    config = Config(str(tmp_path / 'config.json'))
    assert config.load() is False
    assert config.hash_method == 'sha1'
    assert config.worker_count == 10
    assert config.exclude_extensions == []
    assert config.show == 'all'
    assert config.use_colors is True
    assert config.hash_cache_enabled is False


def test_load_merges_known_keys(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'default_datfile': '/dats/snes.dat',
        'hash_method': 'crc',
        'exclude_extensions': ['.TXT', 'nfo'],
        'mystery': 1,
    }), encoding='utf-8')

    config = Config(str(path))
    assert config.load() is True
    assert config.default_datfile == '/dats/snes.dat'
    assert config.hash_method == 'crc'
    assert config.exclude_extensions == ['txt', 'nfo']
    assert 'mystery' not in config.data
    assert config.sort_sets is False


def test_invalid_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text('{not json', encoding='utf-8')
    config = Config(str(path))
    assert config.load() is False
    assert config.data == DEFAULT_CONFIG


def test_bad_values_are_sanitised(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'hash_method': 'sha256', 'worker_count': 500, 'show': 'x'}),
                    encoding='utf-8')
    config = Config(str(path))
    config.load()
    assert config.hash_method == 'sha1'
    assert config.worker_count == 64
    assert config.show == 'all'


def test_setters_validate(tmp_path):
    config = Config(str(tmp_path / 'config.json'))
    with pytest.raises(ValueError):
        config.hash_method = 'sha256'
    with pytest.raises(ValueError):
        config.show = 'everything'
    config.worker_count = 0
    assert config.worker_count == 1


def test_save_round_trip(tmp_path):
    path = tmp_path / 'nested' / 'config.json'
    config = Config(str(path))
    config.hash_method = 'md5'
    config.sort_sets = True
    assert config.save() is True

    reloaded = Config(str(path))
    reloaded.load()
    assert reloaded.hash_method == 'md5'
    assert reloaded.sort_sets is True


def test_reset_to_defaults(tmp_path):
    config = Config(str(tmp_path / 'config.json'))
    config.worker_count = 3
    config.reset_to_defaults()
    assert config.worker_count == 10


def test_paths_use_user_data_dir(user_dir):
    assert Paths.get_config_path() == str(user_dir / 'config.json')
    assert Paths.get_hash_cache_path() == str(user_dir / 'hashcache.db')


def test_hash_cache_path_defaults_to_user_data_dir(user_dir):
    config = Config()
    assert config.config_path == str(user_dir / 'config.json')
    assert config.hash_cache_path == str(user_dir / 'hashcache.db')

    config.hash_cache_path = '/tmp/elsewhere.db'
    assert config.hash_cache_path == '/tmp/elsewhere.db'


def test_paths_follow_xdg_config_home(tmp_path, monkeypatch):
    monkeypatch.setattr('sys.platform', 'linux')
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'xdg'))
    monkeypatch.setattr(Paths, '_user_data_dir', None)

    assert Paths.get_user_data_dir() == str(tmp_path / 'xdg' / 'DatCheck')
    assert (tmp_path / 'xdg' / 'DatCheck').is_dir()


def test_get_config_replaces_instance_for_new_path(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, '_global_config', None)
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'worker_count': 3}), encoding='utf-8')

    config = get_config(str(path))
    assert config.worker_count == 3
    assert get_config() is config


def test_dictionary_style_access(tmp_path):
    config = Config(str(tmp_path / 'config.json'))
    config['sort_sets'] = True
    assert config['sort_sets'] is True
    assert config.get('missing', 'fallback') == 'fallback'
