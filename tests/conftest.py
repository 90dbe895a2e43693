import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.user import ADMIN, MANAGER, SALESPERSON

from factories import DataFactory

PASSWORD = 'senha123'


@pytest.fixture
def app():
    """Fresh application and in-memory database per test."""
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def factory(app):
    return DataFactory


@pytest.fixture
def admin(factory):
    return factory.create_user(role=ADMIN, email='admin@test.com', password=PASSWORD)


@pytest.fixture
def manager(factory):
    return factory.create_user(role=MANAGER, email='gerente@test.com', password=PASSWORD)


@pytest.fixture
def seller(factory):
    return factory.create_user(role=SALESPERSON, email='vendedor@test.com', password=PASSWORD)


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        response = client.post('/auth/login', json={'email': user.email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login
