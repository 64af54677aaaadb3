"""
Pytest fixtures and configuration for tagsync tests
"""
import copy
import os
import sys
import pytest

# Add app directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'app')))


@pytest.fixture
def test_settings():
    """Default settings pointed at an in-memory database, without retry delays"""
    from constants import DEFAULT_SETTINGS

    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings['database']['url'] = 'sqlite://'
    settings['tags']['retry_delay'] = 0
    return settings


@pytest.fixture
def app(test_settings):
    """Application bound to a fresh in-memory SQLite database"""
    from app import create_app

    _app = create_app({'TESTING': True}, settings=test_settings)
    with _app.app_context():
        yield _app


@pytest.fixture
def client(app):
    """Flask test client"""
    with app.test_client() as client:
        yield client


@pytest.fixture
def tag_service(app):
    return app.extensions['tag_service']


@pytest.fixture
def comment_service(app):
    return app.extensions['comment_service']


@pytest.fixture
def make_post(app):
    """Factory creating committed posts"""
    from repositories.post_repository import PostRepository

    def _make_post(title='Test post', **kwargs):
        return PostRepository.create(title=title, **kwargs).id

    return _make_post


@pytest.fixture
def assert_consistent(app):
    """Assert both tag representations of a post agree and return the field"""
    from repositories.post_repository import PostRepository
    from repositories.posttag_repository import PostTagRepository

    def _assert_consistent(post_id):
        tags = PostRepository.read_tags(post_id)
        associated = PostTagRepository.get_tag_names_for_post(post_id)
        assert set(tags) == set(associated)
        assert len(associated) == len(set(associated))
        return tags

    return _assert_consistent


@pytest.fixture
def file_app(tmp_path, test_settings):
    """Application on a temp-file SQLite database, shared by several threads"""
    from app import create_app
    from db import db

    test_settings['database']['url'] = f"sqlite:///{tmp_path / 'tagsync.db'}"
    test_settings['tags']['retry_attempts'] = 20
    test_settings['tags']['retry_delay'] = 0.01
    _app = create_app(
        {'TESTING': True, 'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False}}},
        settings=test_settings,
    )
    yield _app
    with _app.app_context():
        db.engine.dispose()
