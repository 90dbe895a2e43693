"""
Stock adjustments, movements and low-stock reporting.
"""
import pytest

from models import Inventory, InventoryMovement
from models.movement import MOVEMENT_ADJUSTMENT, MOVEMENT_IN, MOVEMENT_OUT
from services.errors import ApiError
from services.inventory_service import InventoryService


def test_stock_status_thresholds(factory):
    out = factory.create_product(stock=0).inventory
    low = factory.create_product(stock=5, min_stock=5).inventory
    ok = factory.create_product(stock=30, min_stock=5).inventory
    assert (out.get_stock_status(), low.get_stock_status(), ok.get_stock_status()) == ('OUT', 'LOW', 'OK')


def test_stock_status_counts_match_row_statuses(factory):
    factory.create_product(stock=0)
    factory.create_product(stock=5, min_stock=5)
    factory.create_product(stock=3, min_stock=10)
    factory.create_product(stock=30, min_stock=5)

    counts = InventoryService.stock_status_counts()

    assert counts == {'OUT': 1, 'LOW': 2, 'OK': 1}
    expected = {'OUT': 0, 'LOW': 0, 'OK': 0}
    for inventory in Inventory.query.all():
        expected[inventory.get_stock_status()] += 1
    assert counts == expected


def test_adjust_stock_records_signed_delta(factory, manager):
    product = factory.create_product(stock=10)

    result = InventoryService.adjust_stock({'productId': product.id, 'quantity': -3, 'reason': 'Quebra'}, manager)

    assert result['inventory']['quantity'] == 7
    assert result['movement']['type'] == MOVEMENT_ADJUSTMENT
    assert result['movement']['delta'] == -3
    assert result['movement']['quantity'] == 3


def test_adjust_stock_cannot_go_negative(factory, manager):
    product = factory.create_product(stock=2)
    with pytest.raises(ApiError) as exc:
        InventoryService.adjust_stock({'productId': product.id, 'quantity': -5, 'reason': 'Inventário'}, manager)
    assert exc.value.status_code == 400
    assert product.stock == 2
    assert InventoryMovement.query.count() == 0


def test_zero_adjustment_is_invalid(factory, manager):
    product = factory.create_product()
    with pytest.raises(ApiError) as exc:
        InventoryService.adjust_stock({'productId': product.id, 'quantity': 0, 'reason': 'Nada'}, manager)
    assert 'quantity' in exc.value.details


def test_process_movement_in_and_out(factory, manager):
    product = factory.create_product(stock=4)

    InventoryService.process_movement(
        {'productId': product.id, 'type': 'IN', 'quantity': 6, 'reason': 'Compra'}, manager)
    result = InventoryService.process_movement(
        {'productId': product.id, 'type': 'out', 'quantity': 9, 'reason': 'Transferência'}, manager)

    assert result['inventory']['quantity'] == 1
    types = [m.type for m in InventoryMovement.query.order_by(InventoryMovement.id).all()]
    assert types == [MOVEMENT_IN, MOVEMENT_OUT]


def test_out_movement_beyond_stock_fails(factory, manager):
    product = factory.create_product(stock=1)
    with pytest.raises(ApiError) as exc:
        InventoryService.process_movement(
            {'productId': product.id, 'type': 'OUT', 'quantity': 2, 'reason': 'Transferência'}, manager)
    assert exc.value.status_code == 400
    assert product.stock == 1


def test_missing_inventory_row_is_created_on_demand(factory, manager):
    product = factory.create_product(with_inventory=False)
    assert product.stock == 0

    inventory = InventoryService.get_by_product(product.id)

    assert inventory.quantity == 0
    assert Inventory.query.filter_by(product_id=product.id).count() == 1


def test_update_rejects_min_above_max(factory, manager):
    inventory = factory.create_product(stock=5).inventory
    with pytest.raises(ApiError):
        InventoryService.update(inventory.id, {'minStock': 50, 'maxStock': 10}, manager)

    updated = InventoryService.update(inventory.id, {'minStock': 2, 'location': 'Corredor A'}, manager)
    assert (updated.min_stock, updated.location) == (2, 'Corredor A')


def test_low_stock_reports_shortage(factory):
    factory.create_product(stock=3, min_stock=10, name='Parafuso')
    factory.create_product(stock=50, min_stock=10)

    alerts = InventoryService.low_stock()

    assert len(alerts) == 1
    assert alerts[0]['product']['name'] == 'Parafuso'
    assert alerts[0]['shortage'] == 7


def test_statistics(factory, manager):
    factory.create_product(price='2.00', stock=10, min_stock=5)
    factory.create_product(price='1.00', stock=0)
    stats = InventoryService.get_statistics()
    assert stats['totalProducts'] == 2
    assert stats['totalQuantity'] == 10
    assert stats['totalValue'] == 20.0
    assert stats['outOfStockCount'] == 1


def test_movement_filters(factory, manager):
    first = factory.create_product(stock=5)
    second = factory.create_product(stock=5)
    InventoryService.adjust_stock({'productId': first.id, 'quantity': 1, 'reason': 'Ajuste'}, manager)
    InventoryService.adjust_stock({'productId': second.id, 'quantity': 2, 'reason': 'Ajuste'}, manager)

    page = InventoryService.get_movements({'productId': second.id})

    assert page['pagination']['total'] == 1
    assert page['data'][0]['delta'] == 2


def test_inventory_api_requires_manage_permission(client, login, manager, seller, factory):
    product = factory.create_product(stock=5)
    login(seller)
    denied = client.post('/api/inventory/adjust', json={'productId': product.id, 'quantity': 1, 'reason': 'Teste'})
    assert denied.status_code == 403

    client.post('/auth/logout')
    login(manager)
    response = client.post('/api/inventory/adjust', json={'productId': product.id, 'quantity': 1, 'reason': 'Teste'})
    assert response.status_code == 201
    assert response.get_json()['inventory']['quantity'] == 6
