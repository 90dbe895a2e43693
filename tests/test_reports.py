"""
Management reports over sales, catalog, customers and stock.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from models import db
from models.customer import WHOLESALE
from services.errors import ApiError
from services.inventory_service import InventoryService
from services.report_service import ReportService, abc_classification, report_range, stock_level
from services.sale_service import SaleService
from services.utils import local_date

NOW = datetime(2024, 3, 15, 10, 30)


def _range_form(period=None, start=None, end=None):
    return SimpleNamespace(period=SimpleNamespace(data=period), start_date=SimpleNamespace(data=start),
                           end_date=SimpleNamespace(data=end))


def _completed(factory, user, customer, lines, **kwargs):
    sale = factory.create_sale(user, customer, lines, **kwargs)
    for step in (SaleService.submit_sale, SaleService.confirm_sale, SaleService.complete_sale):
        step(sale.id, user)
    return sale


@pytest.mark.parametrize('period, first, last', [
    ('today', date(2024, 3, 15), date(2024, 3, 15)),
    ('yesterday', date(2024, 3, 14), date(2024, 3, 14)),
    ('last7days', date(2024, 3, 8), date(2024, 3, 15)),
    ('thisMonth', date(2024, 3, 1), date(2024, 3, 15)),
    ('lastMonth', date(2024, 2, 1), date(2024, 2, 29)),
    ('thisQuarter', date(2024, 1, 1), date(2024, 3, 15)),
    ('lastQuarter', date(2023, 10, 1), date(2023, 12, 31)),
    ('lastYear', date(2023, 1, 1), date(2023, 12, 31)),
])
def test_report_range_periods(app, period, first, last):
    rng = report_range(_range_form(period), now=NOW)
    assert (rng.first_day, rng.last_day) == (first, last)


def test_report_range_bounds_follow_local_midnight(app):
    rng = report_range(_range_form(start=date(2024, 3, 1), end=date(2024, 3, 10)), now=NOW)
    # America/Sao_Paulo is UTC-3
    assert rng.start == datetime(2024, 3, 1, 3)
    assert rng.end == datetime(2024, 3, 11, 3)

    default = report_range(_range_form(), now=NOW)
    assert (default.first_day, default.last_day) == (date(2024, 2, 14), date(2024, 3, 15))


def test_abc_classification():
    classes = abc_classification([(1, 700), (2, 200), (3, 60), (4, 40), (5, 0)])
    assert [entry[0] for entry in classes['A']] == [1, 2]
    assert [entry[0] for entry in classes['B']] == [3]
    assert [entry[0] for entry in classes['C']] == [4]
    assert classes['C'][0][3] == 100.0


def test_stock_level():
    def level(quantity, min_stock=10, max_stock=None):
        return stock_level(SimpleNamespace(quantity=quantity, min_stock=min_stock, max_stock=max_stock))

    assert stock_level(None) == 'out'
    assert level(0) == 'out'
    assert level(5) == 'critical'
    assert level(8) == 'low'
    assert level(30, max_stock=20) == 'overstock'
    assert level(15) == 'normal'


def test_sales_report_groups_and_rankings(factory, seller, manager):
    tools = factory.create_category(name='Ferramentas')
    paints = factory.create_category(name='Tintas')
    hammer = factory.create_product(price='40.00', stock=10, category=tools)
    brush = factory.create_product(price='10.00', stock=10, category=paints)
    ana = factory.create_customer(name='Ana')
    bruno = factory.create_customer(name='Bruno')
    _completed(factory, seller, ana, [(hammer, 2)])
    _completed(factory, manager, bruno, [(brush, 3)])
    factory.create_sale(seller, ana, [(brush, 1)])

    report = ReportService.generate('sales', {'groupBy': 'vendor,category', 'includeDetails': True}, manager)
    data = report['data']

    assert report['metadata']['type'] == 'sales'
    assert report['metadata']['rowCount'] == 2
    assert data['summary']['totalSales'] == 2
    assert data['summary']['totalRevenue'] == 110.0
    assert data['summary']['averageTicket'] == 55.0
    assert data['summary']['totalCustomers'] == 2
    assert data['summary']['totalProducts'] == 2
    assert len(data['byPeriod']) == 31
    assert data['byPeriod'][-1] == {'date': local_date().isoformat(), 'sales': 2, 'revenue': 110.0,
                                    'averageTicket': 55.0}
    assert data['byVendor'][0]['vendorId'] == seller.id
    assert data['byVendor'][0]['totalRevenue'] == 80.0
    assert [(c['categoryName'], c['percentage']) for c in data['byCategory']] == [('Ferramentas', 72.73),
                                                                                  ('Tintas', 27.27)]
    assert data['topProducts'][0]['productId'] == hammer.id
    assert data['topCustomers'][0]['customerName'] == 'Ana'


def test_sales_report_filters(factory, seller, manager):
    product = factory.create_product(price='10.00', stock=50)
    customer = factory.create_customer()
    _completed(factory, seller, customer, [(product, 1)])
    _completed(factory, manager, customer, [(product, 6)])
    factory.create_sale(seller, customer, [(product, 2)])

    def total_sales(filters):
        return ReportService.generate('sales', filters, manager)['data']['summary']['totalSales']

    assert total_sales({}) == 2
    assert total_sales({'vendorId': manager.id}) == 1
    assert total_sales({'minValue': 50}) == 1
    assert total_sales({'maxValue': 50}) == 1
    assert total_sales({'status': 'draft'}) == 1
    assert total_sales({'period': 'yesterday'}) == 0


@pytest.mark.parametrize('filters', [
    {'period': 'custom'},
    {'period': 'decade'},
    {'startDate': '2024-03-10', 'endDate': '2024-03-01'},
    {'startDate': '2022-01-01', 'endDate': '2024-01-01'},
    {'groupBy': 'region'},
    {'minValue': 100, 'maxValue': 10},
])
def test_sales_report_rejects_invalid_filters(manager, filters):
    with pytest.raises(ApiError) as exc:
        ReportService.generate('sales', filters, manager)
    assert exc.value.status_code == 400


def test_unknown_report_type(manager):
    with pytest.raises(ApiError) as exc:
        ReportService.generate('payroll', {}, manager)
    assert exc.value.status_code == 400


def test_product_report_stock_filter_and_abc(factory, seller, manager):
    factory.create_product(stock=0)
    critical = factory.create_product(stock=3, min_stock=10)
    best = factory.create_product(price='50.00', stock=30)
    factory.create_product(stock=30, is_active=False)
    _completed(factory, seller, factory.create_customer(), [(best, 4)])

    report = ReportService.generate('products', {'includeDetails': True}, manager)
    summary = report['data']['summary']

    assert summary['totalProducts'] == 3
    assert summary['outOfStockProducts'] == 1
    assert summary['lowStockProducts'] == 1
    assert summary['totalInventoryValue'] == 30.0 + 26 * 50.0
    best_row = next(p for p in report['data']['products'] if p['id'] == best.id)
    assert best_row['unitsSold'] == 4
    assert report['data']['abcAnalysis']['classA'][0]['productId'] == best.id

    low = ReportService.generate('products', {'stockStatus': 'low'}, manager)
    assert [p['id'] for p in low['data']['products']] == [critical.id]
    everything = ReportService.generate('products', {'includeInactive': True}, manager)
    assert everything['data']['summary']['totalProducts'] == 4


def test_financial_report(factory, seller, manager):
    customer = factory.create_customer()
    _completed(factory, seller, customer, [(factory.create_product(price='10.00'), 3)], discount='5.00', tax='2.00')
    refunded = _completed(factory, seller, customer, [(factory.create_product(price='20.00'), 1)])
    SaleService.refund_sale(refunded.id, {'reason': 'Defeito'}, seller)
    awaiting = factory.create_sale(seller, customer, [(factory.create_product(price='10.00'), 1)])
    SaleService.submit_sale(awaiting.id, seller)
    SaleService.confirm_sale(awaiting.id, seller)

    data = ReportService.generate('financial', {}, manager)['data']

    assert data['summary']['salesCount'] == 1
    assert data['summary']['grossRevenue'] == 30.0
    assert data['summary']['totalDiscounts'] == 5.0
    assert data['summary']['totalTaxes'] == 2.0
    assert data['summary']['billedRevenue'] == 27.0
    assert data['summary']['refunds'] == 20.0
    assert data['summary']['netRevenue'] == 7.0
    assert data['cashFlow'] == [{'date': local_date().isoformat(), 'inflow': 27.0, 'outflow': 20.0,
                                 'balance': 7.0}]
    assert data['receivables'] == {'count': 1, 'total': 10.0, 'overdueCount': 0, 'overdue': 0.0}

    with_taxes = ReportService.generate('financial', {'includeTaxes': True}, manager)['data']
    assert with_taxes['summary']['netRevenue'] == 5.0


def test_customer_report(factory, seller, manager):
    loyal = factory.create_customer(name='Cliente Fiel', state='PE')
    factory.create_customer(name='Atacado Novo', document='11222333000181', type=WHOLESALE, state='SP')
    factory.create_customer(name='Cliente Antigo', is_active=False)
    product = factory.create_product(price='25.00', stock=50)
    _completed(factory, seller, loyal, [(product, 2)])
    _completed(factory, seller, loyal, [(product, 2)])

    report = ReportService.generate('customers', {'includeDetails': True}, manager)
    data = report['data']

    assert data['summary']['totalCustomers'] == 2
    assert data['summary']['activeCustomers'] == 1
    assert data['summary']['totalRevenue'] == 100.0
    assert data['summary']['averagePurchaseValue'] == 100.0
    assert data['ranking'][0]['customerId'] == loyal.id
    assert data['ranking'][0]['totalPurchases'] == 2
    assert {t['type']: t['percentage'] for t in data['segmentation']['byType']} == {'RETAIL': 100.0,
                                                                                    'WHOLESALE': 0.0}
    assert data['segmentation']['byLocation'][0]['state'] == 'PE'
    assert data['rfmAnalysis']['FREQUENT']['count'] == 1
    assert data['rfmAnalysis']['NEW']['count'] == 1

    buyers = ReportService.generate('customers', {'minPurchases': 1}, manager)
    assert buyers['data']['summary']['totalCustomers'] == 1
    wholesale = ReportService.generate('customers', {'customerType': 'wholesale', 'onlyActive': False}, manager)
    assert wholesale['data']['summary']['totalCustomers'] == 1


def test_inventory_report(factory, manager):
    supplier = factory.create_supplier(name='Distribuidora Recife')
    short = factory.create_product(price='5.00', stock=2, min_stock=10, supplier=supplier)
    short.inventory.max_stock = 15
    short.inventory.location = 'A1'
    factory.create_product(price='10.00', stock=40, min_stock=10)
    db.session.commit()
    InventoryService.adjust_stock({'productId': short.id, 'quantity': 1, 'reason': 'Contagem'}, manager)

    report = ReportService.generate('inventory', {'includeMovements': True}, manager)
    data = report['data']

    assert data['summary']['totalItems'] == 2
    assert data['summary']['totalQuantity'] == 43
    assert data['summary']['itemsLowStock'] == 1
    assert data['reorderList'] == [{'productId': short.id, 'productName': short.name, 'currentStock': 3,
                                    'minStock': 10, 'suggestedOrder': 12, 'supplier': 'Distribuidora Recife'}]
    assert {loc['location'] for loc in data['valuation']['byLocation']} == {'A1', 'Não especificado'}
    assert data['movements'][0]['reason'] == 'Contagem'

    located = ReportService.generate('inventory', {'location': 'A1'}, manager)
    assert located['data']['summary']['totalItems'] == 1
    assert 'byLocation' not in located['data']['valuation']


def test_report_endpoints(client, login, factory, seller, manager):
    customer = factory.create_customer(email=None)
    _completed(factory, seller, customer, [(factory.create_product(), 1)])

    login(seller)
    assert client.get('/api/reports/sales').status_code == 403
    client.post('/auth/logout')

    login(manager)
    catalog = client.get('/api/reports').get_json()
    assert [r['type'] for r in catalog['reports']] == ['sales', 'products', 'financial', 'customers', 'inventory']

    response = client.get('/api/reports/sales', query_string={'period': 'today'})
    assert response.status_code == 200
    assert response.get_json()['data']['summary']['totalSales'] == 1

    posted = client.post('/api/reports', json={'type': 'inventory'})
    assert posted.status_code == 200
    assert posted.get_json()['metadata']['type'] == 'inventory'

    assert client.get('/api/reports/payroll').status_code == 400
    assert client.get('/api/reports/sales', query_string={'period': 'decade'}).status_code == 400

    export = client.get('/api/reports/customers', query_string={'format': 'xlsx'})
    assert export.status_code == 200
    assert export.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    assert export.data[:2] == b'PK'
