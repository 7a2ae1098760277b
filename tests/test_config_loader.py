"""
Tests for configuration loading.
"""

import json
from unittest.mock import patch

import pytest

from config.config_loader import load_config, load_report_settings, version_dir_name


class TestLoadConfig:
    """Test load_config."""

    def test_shipped_config(self, report_config):
        assert set(report_config['scopes']) == {'CA', 'US'}
        assert set(report_config['hydrography_sources']) == {'canvec', 'nhd'}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'absent.json')

    def test_does_not_create_output_root(self, tmp_path):
        output_root = tmp_path / 'outputs'

        with patch('config.config_loader.OUTPUT_DIR', output_root):
            load_config()

        assert not output_root.exists()

    def test_missing_key(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'api': {}}))

        with pytest.raises(KeyError, match='scopes'):
            load_config(path)


class TestLoadReportSettings:
    """Test load_report_settings."""

    def test_defaults_fill_gaps(self):
        settings = load_report_settings({'settings': {'vector_format': 'gpkg'}})

        assert settings['vector_format'] == 'gpkg'
        assert settings['float_format'] == '%.6f'
        assert settings['deptype_other_code'] == 'OTHER'


def test_version_dir_name():
    assert version_dir_name('v2') == 'version_v2'
