import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SESSION_TYPE'] = 'cachelib'
os.environ['SESSION_COOKIE_SECURE'] = 'false'
os.environ['SCHEDULER_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_LEVEL'] = 'WARNING'

import pytest

from app import app as flask_app
from seed_data import reset_store


@pytest.fixture
def app():
    with flask_app.app_context():
        reset_store()
    yield flask_app


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


def login_as(client, username, password):
    response = client.post('/api/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['user']


@pytest.fixture
def patron_client(client):
    login_as(client, 'user1', 'pass123')
    return client


@pytest.fixture
def librarian_client(client):
    login_as(client, 'librarian', 'lib123')
    return client


@pytest.fixture
def admin_client(client):
    login_as(client, 'admin', 'admin123')
    return client
