import pytest


@pytest.fixture
def catalog(factory):
    customer = factory.create_customer(document='11144477735')
    product = factory.create_product(price='25.00', stock=8)
    return customer, product


def test_sales_require_login(client):
    response = client.get('/api/sales')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Autenticação necessária'


def test_full_sale_flow_over_http(client, login, seller, catalog):
    customer, product = catalog
    login(seller)

    response = client.post('/api/sales', json={
        'customerId': customer.id,
        'items': [{'productId': product.id, 'quantity': 2}],
        'notes': 'Entrega no balcão',
    })
    assert response.status_code == 201
    sale = response.get_json()
    assert sale['status'] == 'DRAFT'
    assert sale['total'] == 50.0
    assert sale['nextStatuses'] == ['PENDING', 'CANCELLED']

    for action, status in (('submit', 'PENDING'), ('confirm', 'CONFIRMED'), ('complete', 'COMPLETED')):
        response = client.post(f"/api/sales/{sale['id']}/{action}")
        assert response.status_code == 200
        assert response.get_json()['status'] == status

    inventory = client.get(f'/api/inventory/product/{product.id}')
    assert inventory.status_code == 200
    assert inventory.get_json()['quantity'] == 6
    assert client.get('/api/inventory/movements').status_code == 403


def test_invalid_payload_returns_details(client, login, seller, catalog):
    customer, product = catalog
    login(seller)
    response = client.post('/api/sales', json={'customerId': customer.id,
                                                'items': [{'productId': product.id, 'quantity': 0}]})
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Dados inválidos'
    assert 'items' in body['details']


def test_non_object_body_is_rejected(client, login, seller):
    login(seller)
    response = client.post('/api/sales', json=[1, 2, 3])
    assert response.status_code == 400


def test_invalid_transition_is_conflict(client, login, seller, catalog):
    customer, product = catalog
    login(seller)
    sale = client.post('/api/sales', json={'customerId': customer.id,
                                           'items': [{'productId': product.id, 'quantity': 1}]}).get_json()
    response = client.post(f"/api/sales/{sale['id']}/complete")
    assert response.status_code == 409


def test_item_endpoints(client, login, seller, factory, catalog):
    customer, product = catalog
    extra = factory.create_product(price='5.00', stock=3)
    login(seller)
    sale = client.post('/api/sales', json={'customerId': customer.id,
                                           'items': [{'productId': product.id, 'quantity': 1}]}).get_json()

    response = client.post(f"/api/sales/{sale['id']}/items", json={'productId': extra.id, 'quantity': 2})
    assert response.status_code == 201
    assert response.get_json()['total'] == 35.0

    duplicate = client.post(f"/api/sales/{sale['id']}/items", json={'productId': extra.id, 'quantity': 1})
    assert duplicate.status_code == 409

    item_id = response.get_json()['items'][1]['id']
    response = client.patch(f"/api/sales/{sale['id']}/items/{item_id}", json={'quantity': 1})
    assert response.get_json()['total'] == 30.0

    response = client.delete(f"/api/sales/{sale['id']}/items/{item_id}")
    assert response.get_json()['total'] == 25.0


def test_other_sellers_sale_is_forbidden(client, login, seller, factory, catalog):
    customer, product = catalog
    owner = factory.create_user()
    sale = factory.create_sale(owner, customer, [(product, 1)])
    login(seller)
    assert client.get(f'/api/sales/{sale.id}').status_code == 403
    assert client.get('/api/sales/9999').status_code == 404


def test_receipt_endpoint(client, login, manager, factory, catalog):
    customer, product = catalog
    sale = factory.create_sale(manager, customer, [(product, 1)])
    login(manager)
    response = client.get(f'/api/sales/{sale.id}/receipt')
    assert response.status_code == 200
    body = response.get_json()
    assert body['saleNumber'] == sale.sale_number
    assert body['items'][0]['code'] == product.code
