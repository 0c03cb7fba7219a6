"""Unit tests for configuration loading and validation."""
import json
import os

import pytest

from eventsync.config import ConfigManager, SyncSettings, SimulationSettings, AppSettings
from eventsync.constants import DEFAULT_CATEGORIES, SYNC_INTERVAL_MS_DEFAULT
from eventsync.exceptions import ConfigurationError

_ENV_VARS = [
    'EVENTSYNC_CONFIG', 'EVENTSYNC_CATEGORIES', 'EVENTSYNC_SYNC_INTERVAL_MS',
    'EVENTSYNC_MAX_EVENTS', 'EVENTSYNC_RATE_LIMITED_RATE', 'EVENTSYNC_SEED', 'LOG_LEVEL',
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    # keep a user config in the real home directory out of the tests
    monkeypatch.setenv('EVENTSYNC_CONFIG', str(tmp_path / 'absent.json'))


def test_defaults():
    cfg = ConfigManager()
    assert cfg.sync_settings.categories == DEFAULT_CATEGORIES
    assert cfg.sync_settings.sync_interval_ms == SYNC_INTERVAL_MS_DEFAULT
    assert cfg.validate() == []
    assert cfg.config_file is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('EVENTSYNC_CATEGORIES', 'X, Y ,Z')
    monkeypatch.setenv('EVENTSYNC_SYNC_INTERVAL_MS', '50')
    monkeypatch.setenv('EVENTSYNC_RATE_LIMITED_RATE', '0.5')
    monkeypatch.setenv('EVENTSYNC_SEED', '9')
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    cfg = ConfigManager()
    assert cfg.sync_settings.categories == ('X', 'Y', 'Z')
    assert cfg.sync_settings.sync_interval_ms == 50
    assert cfg.simulation_settings.rate_limited_rate == 0.5
    assert cfg.simulation_settings.seed == 9
    assert cfg.app_settings.log_level == 'DEBUG'


def test_invalid_environment_value_is_ignored(monkeypatch):
    monkeypatch.setenv('EVENTSYNC_MAX_EVENTS', 'lots')
    cfg = ConfigManager()
    assert cfg.simulation_settings.max_events == SimulationSettings().max_events


def test_file_overrides_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('EVENTSYNC_SYNC_INTERVAL_MS', '50')
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'sync_settings': {'categories': ['C', 'D'], 'sync_interval_ms': '120'},
        'simulation_settings': {'max_events': 10, 'seed': 3},
        'app_settings': {'log_level': 'warning'},
    }), encoding='utf-8')
    cfg = ConfigManager(str(path))
    assert cfg.sync_settings.categories == ('C', 'D')
    assert cfg.sync_settings.sync_interval_ms == 120
    assert cfg.simulation_settings.max_events == 10
    assert cfg.simulation_settings.seed == 3
    assert cfg.app_settings.log_level == 'WARNING'
    assert cfg.config_file == str(path)


def test_config_file_from_environment(monkeypatch, tmp_path):
    path = tmp_path / 'env_config.json'
    path.write_text(json.dumps({'sync_settings': {'sync_interval_ms': 75}}), encoding='utf-8')
    monkeypatch.setenv('EVENTSYNC_CONFIG', str(path))
    assert ConfigManager().sync_settings.sync_interval_ms == 75


def test_malformed_file_keeps_defaults(tmp_path):
    path = tmp_path / 'broken.json'
    path.write_text('{not json', encoding='utf-8')
    cfg = ConfigManager(str(path))
    assert cfg.sync_settings == SyncSettings()
    assert cfg.config_file == str(path)


def test_save_and_reload(tmp_path):
    cfg = ConfigManager()
    cfg.sync_settings.categories = ('P', 'Q')
    cfg.simulation_settings.max_events = 5
    path = tmp_path / 'nested' / 'saved.json'
    assert cfg.save_to_file(str(path))
    assert os.path.exists(path)
    data = json.loads(path.read_text(encoding='utf-8'))
    assert data['sync_settings']['categories'] == ['P', 'Q']
    assert 'seed' not in data['simulation_settings']

    reloaded = ConfigManager(str(path))
    assert reloaded.sync_settings.categories == ('P', 'Q')
    assert reloaded.simulation_settings.max_events == 5


class TestValidation:

    def test_sync_settings(self):
        assert SyncSettings(categories=()).validate()
        assert SyncSettings(categories=('A', 'A')).validate()
        assert SyncSettings(sync_interval_ms=0).validate()

    def test_simulation_settings(self):
        assert SimulationSettings(max_events=-1).validate()
        assert SimulationSettings(min_latency_ms=10, max_latency_ms=5).validate()
        assert SimulationSettings(rate_limited_rate=1.5).validate()
        assert SimulationSettings(rate_limited_rate=0.5, request_failed_rate=0.4,
                                  ambiguous_write_rate=0.2).validate()

    def test_app_settings(self):
        assert AppSettings(log_level='LOUD').validate()
        assert AppSettings(stats_interval_ms=0).validate()

    def test_require_valid_raises(self):
        cfg = ConfigManager()
        cfg.sync_settings.sync_interval_ms = -5
        with pytest.raises(ConfigurationError, match="Sync interval"):
            cfg.require_valid()
