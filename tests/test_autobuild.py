"""Tests for the build entry point and its incremental manifest."""
import json
import os

import pytest

import autobuild
import config
from metadata import SiteMetadataError, from_json, load_site_metadata


def test_build_writes_all_outputs(build_dir):
    assert autobuild.build_site() is True

    for path in autobuild.output_paths():
        assert os.path.exists(path), path

    meta = load_site_metadata()
    assert from_json((build_dir / config.METADATA_JSON_FILE).read_text(encoding='utf-8')) == meta

    analytics = (build_dir / config.PARTIALS_DIR_NAME / config.ANALYTICS_PARTIAL).read_text(encoding='utf-8')
    assert 'G-V449656PFE' in analytics

    index_html = (build_dir / config.INDEX_FILE).read_text(encoding='utf-8')
    assert 'giscus.app/client.js' in index_html

    csp = (build_dir / config.CSP_FILE).read_text(encoding='utf-8')
    assert csp.startswith("default-src 'self';")
    assert 'https://giscus.app' in csp


def test_second_build_is_skipped(build_dir):
    assert autobuild.build_site() is True
    assert autobuild.build_site() is False
    assert autobuild.build_site(force=True) is True


def test_missing_output_triggers_rebuild(build_dir):
    autobuild.build_site()
    (build_dir / config.INDEX_FILE).unlink()
    assert autobuild.build_site() is True
    assert (build_dir / config.INDEX_FILE).exists()


def test_changed_metadata_triggers_rebuild(build_dir, site_data, write_metadata):
    path = write_metadata(site_data)
    assert autobuild.build_site(path) is True

    site_data['search'] = {'provider': 'kbar', 'kbarConfig': {'searchDocumentsPath': 'search-index.json'}}
    write_metadata(site_data)
    assert autobuild.build_site(path) is True

    search = (build_dir / config.PARTIALS_DIR_NAME / config.SEARCH_PARTIAL).read_text(encoding='utf-8')
    assert 'search-index.json' in search


def test_environment_change_triggers_rebuild(build_dir, site_data, write_metadata, monkeypatch):
    site_data['analytics'] = {'umamiAnalytics': {'umamiWebsiteId': '${UMAMI_WEBSITE_ID}'}}
    path = write_metadata(site_data)

    monkeypatch.setenv('UMAMI_WEBSITE_ID', 'first-id')
    assert autobuild.build_site(path) is True
    monkeypatch.setenv('UMAMI_WEBSITE_ID', 'second-id')
    assert autobuild.build_site(path) is True

    analytics = (build_dir / config.PARTIALS_DIR_NAME / config.ANALYTICS_PARTIAL).read_text(encoding='utf-8')
    assert 'second-id' in analytics


def test_no_analytics_writes_empty_partial(build_dir, site_data, write_metadata):
    site_data['analytics'] = {}
    autobuild.build_site(write_metadata(site_data))
    assert (build_dir / config.PARTIALS_DIR_NAME / config.ANALYTICS_PARTIAL).read_text(encoding='utf-8') == ''


def test_invalid_metadata_fails_before_writing(build_dir, site_data, write_metadata):
    site_data['comments']['giscusConfig']['reactions'] = 'yes'
    with pytest.raises(SiteMetadataError, match='reactions'):
        autobuild.build_site(write_metadata(site_data))
    assert not build_dir.exists()


def test_corrupt_manifest_forces_rebuild(build_dir):
    autobuild.build_site()
    (build_dir / config.MANIFEST_FILE).write_text('{not json', encoding='utf-8')
    assert autobuild.build_site() is True
    manifest = json.loads((build_dir / config.MANIFEST_FILE).read_text(encoding='utf-8'))
    assert set(manifest) == {'metadata', 'templates'}
    assert 'comments/giscus.html' in manifest['templates']


def test_main_check_valid(capsys):
    assert autobuild.main(['--check']) == 0
    assert 'site metadata is valid' in capsys.readouterr().out


def test_main_reports_invalid_metadata(site_data, write_metadata, capsys):
    site_data['theme'] = 'sepia'
    assert autobuild.main(['--check', '--metadata', write_metadata(site_data)]) == 1
    assert 'theme' in capsys.readouterr().err


def test_main_builds(build_dir, capsys):
    assert autobuild.main(['--force']) == 0
    assert 'BUILD COMPLETE' in capsys.readouterr().out
    assert (build_dir / config.METADATA_JSON_FILE).exists()


def test_main_reports_unreadable_metadata(tmp_path, capsys):
    assert autobuild.main(['--check', '--metadata', str(tmp_path)]) == 1
    assert 'cannot read site metadata file' in capsys.readouterr().err


def test_main_reports_non_utf8_metadata(tmp_path, capsys):
    path = tmp_path / 'site_metadata.yml'
    path.write_bytes(b'title: "\xff\xfe"\n')
    assert autobuild.main(['--check', '--metadata', str(path)]) == 1
    assert 'cannot read site metadata file' in capsys.readouterr().err
