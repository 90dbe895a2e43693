"""
Session cart arithmetic and checkout into a completed sale.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from models import Sale
from models.sale import COMPLETED, DRAFT
from services.cart import ShoppingCart, SESSION_KEY
from services.errors import ApiError
from services.pos_service import PosService


def _product(id, price, stock=10):
    return SimpleNamespace(id=id, name=f'Produto {id}', code=f'P{id}', price=Decimal(price), stock=stock)


def test_cart_totals_with_percentage_discount():
    cart = ShoppingCart(customer_id=1)
    cart.add_item(_product(1, '10.00'), 2)
    cart.add_item(_product(2, '3.35'), 3, discount='0.05')
    cart.set_adjustments('PERCENTAGE', '10', '1.00')

    assert cart.subtotal == Decimal('30.00')
    assert cart.discount == Decimal('3.00')
    assert cart.total == Decimal('28.00')
    assert cart.item_count == 5
    assert cart.is_valid()


def test_cart_merges_same_product():
    cart = ShoppingCart()
    cart.add_item(_product(1, '5.00'), 1)
    cart.add_item(_product(1, '5.00'), 2)
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3


def test_cart_update_clamps_quantity():
    cart = ShoppingCart()
    cart.add_item(_product(1, '5.00'), 4)
    cart.update_item(1, quantity=0)
    assert cart.find(1).quantity == 1
    assert cart.update_item(99, quantity=2) is None


def test_cart_validation_messages():
    cart = ShoppingCart()
    assert cart.validation_errors() == ['Selecione um cliente', 'Carrinho vazio']

    cart.set_customer(SimpleNamespace(id=7, name='Ana'))
    cart.add_item(_product(1, '10.00', stock=1), 2)
    cart.set_adjustments('FIXED', '50.00')
    errors = cart.validation_errors()
    assert any('excede o estoque' in e for e in errors)
    assert 'Desconto maior que o subtotal' in errors


def test_cart_round_trips_through_session_store():
    store = {}
    cart = ShoppingCart(customer_id=3, customer_name='Ana')
    cart.add_item(_product(1, '9.99'), 2, discount='1.00')
    cart.save(store)

    loaded = ShoppingCart.load(store)

    assert store[SESSION_KEY]['items'][0]['unit_price'] == '9.99'
    assert loaded.total == Decimal('18.98')
    assert loaded.customer_name == 'Ana'


def test_add_item_checks_stock(factory):
    product = factory.create_product(stock=2)
    store = {}
    PosService.add_item(store, {'productId': product.id, 'quantity': 2})
    with pytest.raises(ApiError) as exc:
        PosService.add_item(store, {'productId': product.id, 'quantity': 1})
    assert exc.value.status_code == 400
    assert ShoppingCart.load(store).find(product.id).quantity == 2


def test_checkout_completes_sale_and_clears_cart(factory, seller):
    customer = factory.create_customer()
    product = factory.create_product(price='12.00', stock=10)
    store = {}
    PosService.add_item(store, {'productId': product.id, 'quantity': 3})
    PosService.set_customer(store, {'customerId': customer.id})
    PosService.set_adjustments(store, {'discountType': 'FIXED', 'discountValue': '6.00'})

    sale = PosService.checkout(store, {'notes': 'Balcão'}, seller)

    assert sale.status == COMPLETED
    assert sale.total == Decimal('30.00')
    assert sale.notes == 'Balcão'
    assert product.stock == 7
    assert ShoppingCart.load(store).items == []


def test_checkout_can_leave_sale_as_draft(factory, seller):
    customer = factory.create_customer()
    product = factory.create_product(stock=5)
    store = {}
    PosService.add_item(store, {'productId': product.id})
    PosService.set_customer(store, {'customerId': customer.id})

    sale = PosService.checkout(store, {'finalize': False}, seller)

    assert sale.status == DRAFT
    assert product.stock == 5


def test_checkout_rejects_invalid_cart(seller):
    with pytest.raises(ApiError) as exc:
        PosService.checkout({}, {}, seller)
    assert exc.value.status_code == 400
    assert exc.value.details == ['Selecione um cliente', 'Carrinho vazio']
    assert Sale.query.count() == 0


def test_pos_http_flow(client, login, seller, factory):
    customer = factory.create_customer()
    product = factory.create_product(price='4.50', stock=6)
    login(seller)

    listing = client.get('/pos/api/products', query_string={'q': product.code})
    assert [p['id'] for p in listing.get_json()] == [product.id]

    cart = client.post('/pos/api/cart/items', json={'productId': product.id, 'quantity': 2}).get_json()
    assert cart['totals']['total'] == 9.0
    assert cart['isValid'] is False

    cart = client.put('/pos/api/cart/customer', json={'customerId': customer.id}).get_json()
    assert cart['isValid'] is True

    response = client.post('/pos/api/checkout', json={})
    assert response.status_code == 201
    assert response.get_json()['sale']['status'] == COMPLETED
    assert client.get('/pos/api/cart').get_json()['items'] == []
