"""
Sale lifecycle at the service layer: totals, transitions and stock.
"""
from decimal import Decimal

import pytest
from sqlalchemy import update

from models import db, InventoryMovement, Sale
from models.movement import MOVEMENT_IN, MOVEMENT_OUT
from models.sale import (DRAFT, PENDING, CONFIRMED, COMPLETED, CANCELLED, REFUNDED, can_transition,
                         calculate_item_total, calculate_sale_total, format_sale_number)
from services.errors import ApiError
from services.sale_service import SaleService


@pytest.fixture
def customer(factory):
    return factory.create_customer(document='52998224725')


@pytest.fixture
def product(factory):
    return factory.create_product(price='10.00', stock=20)


def _confirmed_sale(factory, seller, customer, product, quantity=5):
    sale = factory.create_sale(seller, customer, [(product, quantity)])
    SaleService.submit_sale(sale.id, seller)
    return SaleService.confirm_sale(sale.id, seller)


def test_transition_table():
    assert can_transition(DRAFT, PENDING)
    assert can_transition(PENDING, CONFIRMED)
    assert can_transition(CONFIRMED, COMPLETED)
    assert can_transition(COMPLETED, REFUNDED)
    assert not can_transition(DRAFT, CONFIRMED)
    assert not can_transition(COMPLETED, CANCELLED)
    assert not can_transition(CANCELLED, PENDING)
    assert not can_transition(REFUNDED, COMPLETED)


def test_total_helpers_round_half_up():
    assert calculate_item_total(3, '0.335') == Decimal('1.02')
    assert calculate_item_total(2, '10.00', '5.00') == Decimal('15.00')
    assert calculate_sale_total('100.00', '10.00', '2.50') == Decimal('92.50')
    assert format_sale_number(42) == 'VD000042'


def test_create_sale_computes_totals(factory, seller, customer, product):
    other = factory.create_product(price='2.50', stock=10)
    sale = factory.create_sale(seller, customer, [(product, 2, '1.00'), (other, 4)], discount='3.00', tax='0.50')

    assert sale.status == DRAFT
    assert sale.sale_number == format_sale_number(sale.id)
    assert [item.total for item in sale.items] == [Decimal('19.00'), Decimal('10.00')]
    assert sale.subtotal == Decimal('29.00')
    assert sale.total == Decimal('26.50')
    assert product.stock == 20


def test_create_sale_rejects_insufficient_stock(factory, seller, customer):
    product = factory.create_product(stock=3)
    with pytest.raises(ApiError) as exc:
        factory.create_sale(seller, customer, [(product, 4)])
    assert exc.value.status_code == 400
    assert exc.value.details[0]['shortfall'] == 1


def test_create_sale_rejects_duplicate_products(factory, seller, customer, product):
    with pytest.raises(ApiError) as exc:
        factory.create_sale(seller, customer, [(product, 1), (product, 2)])
    assert exc.value.status_code == 400
    assert 'items' in exc.value.details


def test_create_sale_requires_items(seller, customer):
    with pytest.raises(ApiError) as exc:
        SaleService.create_sale({'customerId': customer.id, 'items': []}, seller)
    assert exc.value.status_code == 400


def test_create_sale_rejects_inactive_customer(factory, seller, product):
    customer = factory.create_customer(is_active=False)
    with pytest.raises(ApiError) as exc:
        factory.create_sale(seller, customer, [(product, 1)])
    assert exc.value.status_code == 400


def test_item_discount_above_gross_is_rejected(factory, seller, customer, product):
    with pytest.raises(ApiError) as exc:
        factory.create_sale(seller, customer, [(product, 1, '15.00')])
    assert exc.value.status_code == 400


def test_negative_sale_total_is_rejected(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 1)])
    with pytest.raises(ApiError) as exc:
        SaleService.update_sale(sale.id, {'discount': '50.00'}, seller)
    assert exc.value.status_code == 400
    assert SaleService.get_sale(sale.id, seller).total == Decimal('10.00')


def test_adding_item_recomputes_total(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 1)])
    other = factory.create_product(price='4.25', stock=5)

    sale = SaleService.add_item(sale.id, {'productId': other.id, 'quantity': 2}, seller)

    assert len(sale.items) == 2
    assert sale.total == Decimal('18.50')


def test_adding_same_product_twice_conflicts(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 1)])
    with pytest.raises(ApiError) as exc:
        SaleService.add_item(sale.id, {'productId': product.id, 'quantity': 1}, seller)
    assert exc.value.status_code == 409


def test_update_and_remove_item_recompute_total(factory, seller, customer, product):
    other = factory.create_product(price='1.00', stock=5)
    sale = factory.create_sale(seller, customer, [(product, 1), (other, 1)])
    item = sale.find_item_by_product(product.id)

    sale = SaleService.update_item(sale.id, item.id, {'quantity': 3, 'discount': '2.00'}, seller)
    assert sale.find_item(item.id).total == Decimal('28.00')
    assert sale.total == Decimal('29.00')

    sale = SaleService.remove_item(sale.id, item.id, seller)
    assert sale.total == Decimal('1.00')


def test_discount_and_tax_updates_recompute_total(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 10)])

    sale = SaleService.apply_discount(sale.id, {'type': 'PERCENTAGE', 'value': 10, 'reason': 'Cliente fiel'}, seller)
    assert sale.discount == Decimal('10.00')
    assert sale.total == Decimal('90.00')
    assert 'Cliente fiel' in sale.notes

    sale = SaleService.update_sale(sale.id, {'tax': '5.00'}, seller)
    assert sale.total == Decimal('95.00')


def test_percentage_discount_over_100_is_rejected(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 1)])
    with pytest.raises(ApiError) as exc:
        SaleService.apply_discount(sale.id, {'type': 'PERCENTAGE', 'value': 150}, seller)
    assert exc.value.status_code == 400


def test_confirm_requires_pending(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 1)])
    with pytest.raises(ApiError) as exc:
        SaleService.confirm_sale(sale.id, seller)
    assert exc.value.status_code == 409


def test_confirm_rereads_status_before_reserving(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 5)])
    SaleService.submit_sale(sale.id, seller)
    # another request confirmed the row after this session loaded it
    db.session.execute(update(Sale).where(Sale.id == sale.id).values(status=CONFIRMED)
                       .execution_options(synchronize_session=False))
    assert sale.status == PENDING

    with pytest.raises(ApiError) as exc:
        SaleService.confirm_sale(sale.id, seller)

    assert exc.value.status_code == 409
    assert product.stock == 20
    assert InventoryMovement.query.filter_by(sale_id=sale.id).count() == 0


def test_confirm_reserves_stock_and_records_movements(factory, seller, customer, product):
    sale = _confirmed_sale(factory, seller, customer, product, quantity=5)

    assert sale.status == CONFIRMED
    assert product.stock == 15
    movement = InventoryMovement.query.filter_by(sale_id=sale.id).one()
    assert movement.type == MOVEMENT_OUT
    assert movement.delta == -5
    assert movement.reason == f'Venda {sale.sale_number}'


def test_confirm_fails_when_stock_ran_out(factory, seller, customer):
    product = factory.create_product(stock=5)
    first = factory.create_sale(seller, customer, [(product, 4)])
    second = factory.create_sale(seller, customer, [(product, 4)])
    SaleService.submit_sale(first.id, seller)
    SaleService.submit_sale(second.id, seller)
    SaleService.confirm_sale(first.id, seller)

    with pytest.raises(ApiError) as exc:
        SaleService.confirm_sale(second.id, seller)

    assert exc.value.status_code == 400
    assert exc.value.details[0]['available'] == 1
    assert SaleService.get_sale(second.id, seller).status == PENDING
    assert product.stock == 1


def test_confirmed_sale_cannot_be_edited(factory, seller, customer, product):
    sale = _confirmed_sale(factory, seller, customer, product)
    with pytest.raises(ApiError) as exc:
        SaleService.update_sale(sale.id, {'notes': 'tarde demais'}, seller)
    assert exc.value.status_code == 409


def test_cancel_confirmed_sale_returns_stock(factory, seller, customer, product):
    sale = _confirmed_sale(factory, seller, customer, product, quantity=5)

    sale = SaleService.cancel_sale(sale.id, {'reason': 'Desistência'}, seller)

    assert sale.status == CANCELLED
    assert product.stock == 20
    assert 'Desistência' in sale.notes
    returned = InventoryMovement.query.filter_by(sale_id=sale.id, type=MOVEMENT_IN).one()
    assert returned.quantity == 5


def test_cancel_draft_sale_leaves_stock_untouched(factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 5)])
    SaleService.cancel_sale(sale.id, {}, seller)
    assert product.stock == 20
    assert InventoryMovement.query.filter_by(sale_id=sale.id).count() == 0


def test_complete_and_refund(factory, seller, customer, product):
    sale = _confirmed_sale(factory, seller, customer, product, quantity=2)

    sale = SaleService.complete_sale(sale.id, seller)
    assert sale.status == COMPLETED
    with pytest.raises(ApiError) as exc:
        SaleService.cancel_sale(sale.id, {}, seller)
    assert exc.value.status_code == 409

    sale = SaleService.refund_sale(sale.id, {'reason': 'Defeito'}, seller)
    assert sale.status == REFUNDED
    assert product.stock == 20


def test_refund_requires_completed(factory, seller, customer, product):
    sale = _confirmed_sale(factory, seller, customer, product)
    with pytest.raises(ApiError) as exc:
        SaleService.refund_sale(sale.id, {}, seller)
    assert exc.value.status_code == 409


def test_salesperson_cannot_reach_another_sellers_sale(factory, seller, manager, customer, product):
    other = factory.create_user()
    sale = factory.create_sale(other, customer, [(product, 1)])

    with pytest.raises(ApiError) as exc:
        SaleService.get_sale(sale.id, seller)
    assert exc.value.status_code == 403
    assert SaleService.get_sale(sale.id, manager).id == sale.id


def test_unknown_sale_is_not_found(seller):
    with pytest.raises(ApiError) as exc:
        SaleService.get_sale(999, seller)
    assert exc.value.status_code == 404


def test_validate_stock_report(factory, product):
    scarce = factory.create_product(stock=1)
    report = SaleService.validate_stock({'items': [{'productId': product.id, 'quantity': 2},
                                                   {'productId': scarce.id, 'quantity': 3}]})
    assert report['isValid'] is False
    assert report['validItems'] == 1
    assert report['invalidItems'] == 1
    assert report['summary']['totalShortfall'] == 2


def test_list_sales_scopes_salesperson(factory, seller, manager, customer, product):
    factory.create_sale(seller, customer, [(product, 1)])
    factory.create_sale(manager, customer, [(product, 2)])

    own = SaleService.list_sales({}, seller)
    everything = SaleService.list_sales({}, manager)

    assert own['pagination']['total'] == 1
    assert everything['pagination']['total'] == 2
    assert everything['summary']['totalRevenue'] == 30.0
    assert everything['summary']['totalQuantity'] == 3


def test_receipt_formats_currency(app, factory, seller, customer, product):
    sale = factory.create_sale(seller, customer, [(product, 2)])
    with app.test_request_context():
        receipt = SaleService.build_receipt(sale.id, seller)
    assert receipt['saleNumber'] == sale.sale_number
    assert receipt['customer']['document'] == '529.982.247-25'
    assert '20,00' in receipt['total']
