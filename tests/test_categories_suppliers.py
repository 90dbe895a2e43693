import pytest

from services.category_service import CategoryService
from services.errors import ApiError
from services.sale_service import SaleService
from services.supplier_service import SupplierService


def test_category_names_are_unique_ignoring_case(manager):
    CategoryService.create({'name': 'Elétrica', 'cnae': '4742-3/00'}, manager)
    with pytest.raises(ApiError) as exc:
        CategoryService.create({'name': 'ELÉTRICA'}, manager)
    assert exc.value.status_code == 409


def test_category_cnae_format(manager):
    with pytest.raises(ApiError) as exc:
        CategoryService.create({'name': 'Hidráulica', 'cnae': '4742300'}, manager)
    assert 'cnae' in exc.value.details


def test_category_cnae_is_optional(manager):
    category = CategoryService.create({'name': 'Ferragens', 'cnae': ''}, manager)
    assert category.id is not None


def test_category_with_products_cannot_be_deleted(factory, manager):
    category = factory.create_category()
    factory.create_product(category=category)
    empty = factory.create_category()

    with pytest.raises(ApiError) as exc:
        CategoryService.delete(category.id, manager)
    assert exc.value.status_code == 409

    CategoryService.delete(empty.id, manager)
    with pytest.raises(ApiError):
        CategoryService.get(empty.id)


def test_category_list_sorted_by_product_count(factory):
    busy = factory.create_category(name='Cheia')
    factory.create_category(name='Vazia')
    factory.create_product(category=busy)
    factory.create_product(category=busy)

    result = CategoryService.list({'sortBy': 'productCount', 'sortOrder': 'desc'})

    assert [c['name'] for c in result['data']] == ['Cheia', 'Vazia']
    assert result['data'][0]['productCount'] == 2


def test_category_statistics(factory):
    busy = factory.create_category()
    factory.create_category(is_active=False)
    factory.create_product(category=busy)
    stats = CategoryService.statistics()
    assert (stats['total'], stats['active'], stats['withProducts']) == (2, 1, 1)
    assert stats['topCategories'][0]['id'] == busy.id


def test_supplier_cnpj_is_validated_and_unique(manager):
    supplier = SupplierService.create({'name': 'Distribuidora Norte', 'cnpj': '11.222.333/0001-81',
                                       'state': 'pe'}, manager)
    assert supplier.cnpj == '11222333000181'
    assert supplier.state == 'PE'

    with pytest.raises(ApiError) as exc:
        SupplierService.create({'name': 'Cópia', 'cnpj': '11222333000181'}, manager)
    assert exc.value.status_code == 409

    with pytest.raises(ApiError) as exc:
        SupplierService.create({'name': 'Inválida', 'cnpj': '11222333000100'}, manager)
    assert 'cnpj' in exc.value.details


def test_supplier_delete_blocked_by_products(factory, manager):
    supplier = factory.create_supplier()
    factory.create_product(supplier=supplier)
    idle = factory.create_supplier()

    with pytest.raises(ApiError) as exc:
        SupplierService.delete(supplier.id, manager)
    assert exc.value.status_code == 400
    assert SupplierService.delete(idle.id, manager).is_active is False


def test_supplier_performance_counts_completed_sales(factory, seller):
    supplier = factory.create_supplier()
    product = factory.create_product(price='8.00', supplier=supplier)
    sale = factory.create_sale(seller, factory.create_customer(), [(product, 3)])
    for step in (SaleService.submit_sale, SaleService.confirm_sale, SaleService.complete_sale):
        step(sale.id, seller)
    factory.create_sale(seller, factory.create_customer(), [(product, 1)])

    performance = SupplierService.performance(supplier.id)

    assert performance['totalSales'] == 1
    assert performance['totalRevenue'] == 24.0
    assert performance['totalQuantity'] == 3
    assert performance['activeProducts'] == 1


def test_supplier_by_state_and_export(factory):
    factory.create_supplier(name='Recife Ltda', state='PE')
    factory.create_supplier(name='Paulista SA', state='SP')
    assert [s['name'] for s in SupplierService.by_state('pe')] == ['Recife Ltda']
    assert SupplierService.export_xlsx().getvalue()[:2] == b'PK'


def test_category_endpoints(client, login, manager, seller):
    login(seller)
    assert client.post('/api/categories', json={'name': 'Tintas'}).status_code == 403
    client.post('/auth/logout')

    login(manager)
    response = client.post('/api/categories', json={'name': 'Tintas'})
    assert response.status_code == 201
    category_id = response.get_json()['id']
    response = client.put(f'/api/categories/{category_id}', json={'description': 'Tintas e vernizes'})
    assert response.get_json()['description'] == 'Tintas e vernizes'
    assert client.get('/api/categories/999').status_code == 404
