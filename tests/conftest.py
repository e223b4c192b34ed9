"""Pytest fixtures: a valid site metadata mapping and an isolated build directory."""
import copy

import pytest
import yaml

import config
from metadata import parse_site_metadata

SITE_DATA = {
    'title': "Daphne's blog",
    'author': 'Daphne',
    'headerTitle': 'daphne.log',
    'description': 'Daphne의 개발 블로그입니다',
    'language': 'ko',
    'theme': 'system',
    'siteUrl': 'https://daphne-dev.github.io',
    'siteRepo': 'git@github.com:daphne-dev/daphne-dev.github.io.git',
    'siteLogo': '/static/images/logo.png',
    'socialBanner': '/static/images/blog-card.png',
    'mastodon': 'https://mastodon.social/@mastodonuser',
    'email': 'daphne01215@gmail.com',
    'github': 'https://github.com/daphne-dev',
    'locale': 'ko-KR',
    'analytics': {
        'googleAnalytics': {'googleAnalyticsId': 'G-V449656PFE'},
    },
    'comments': {
        'provider': 'giscus',
        'giscusConfig': {
            'repo': 'daphne-dev/daphne-dev.github.io',
            'repositoryId': 'R_kgDOLAbwOw',
            'category': 'General',
            'categoryId': 'DIC_kwDOLAbwO84CcLy2',
            'mapping': 'pathname',
            'reactions': '1',
            'metadata': '0',
            'theme': 'light',
            'darkTheme': 'transparent_dark',
            'themeURL': '',
            'lang': 'ko',
        },
    },
    'search': {
        'provider': 'kbar',
        'kbarConfig': {'searchDocumentsPath': 'search.json'},
    },
}

ALGOLIA_SEARCH = {
    'provider': 'algolia',
    'algoliaConfig': {
        'appId': 'R2IYF7ETH7',
        'apiKey': '599cec31baffa4868cae4e79f180729b',
        'indexName': 'docsearch',
    },
}


@pytest.fixture
def site_data():
    """A fresh, mutable copy of a valid site metadata mapping."""
    return copy.deepcopy(SITE_DATA)


@pytest.fixture
def algolia_search():
    return copy.deepcopy(ALGOLIA_SEARCH)


@pytest.fixture
def meta(site_data):
    return parse_site_metadata(site_data)


@pytest.fixture
def write_metadata(tmp_path):
    """Write a mapping (or raw text) to a YAML file and return its path."""
    def _write(data, name='site_metadata.yml'):
        path = tmp_path / name
        text = data if isinstance(data, str) else yaml.safe_dump(data, allow_unicode=True, sort_keys=False)
        path.write_text(text, encoding='utf-8')
        return str(path)
    return _write


@pytest.fixture
def build_dir(tmp_path, monkeypatch):
    """Redirect build output into a temporary directory."""
    out = tmp_path / '_site'
    monkeypatch.setattr(config, 'BUILD_DIR', str(out))
    return out
