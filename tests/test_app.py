import logging

from app import create_app
from config import TestingConfig
from services.utils import log_action


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_unknown_route_returns_json_404(client):
    response = client.get('/nao-existe')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Recurso não encontrado'}


def test_method_not_allowed_is_json(client):
    response = client.delete('/health')
    assert response.status_code == 405
    assert response.get_json()['error'] == 'Método não permitido'


def test_logging_handlers_are_installed_once(app):
    create_app(TestingConfig)
    marked = [h for h in logging.getLogger().handlers if getattr(h, '_comercial', False)]
    assert len(marked) == 1


def test_audit_line(caplog, seller):
    with caplog.at_level(logging.INFO, logger='comercial.audit'):
        log_action(seller, 'sale.create', 'VD000001', total='10.00')
    assert f'user={seller.id}:{seller.email} action=sale.create target=VD000001 total=10.00' in caplog.text
