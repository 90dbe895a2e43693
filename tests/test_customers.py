from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.customer_service import (CustomerService, rfm_analysis, customer_segment,
                                       NEW, INACTIVE, VIP, FREQUENT, REGULAR)
from services.errors import ApiError
from services.sale_service import SaleService

NOW = datetime(2024, 6, 30, 12, 0)


def _sale(days_ago, total):
    return SimpleNamespace(sale_date=NOW - timedelta(days=days_ago), total=Decimal(total))


def test_rfm_without_purchases_is_new():
    result = rfm_analysis([], now=NOW)
    assert result['segment'] == NEW
    assert result['scores'] == {'recency': 1, 'frequency': 1, 'monetary': 1}
    assert result['score'] == 1.0


def test_rfm_scores_recent_big_spender():
    """Twelve purchases over 60 days: 6 per month, last one 5 days ago."""
    sales = [_sale(5 + i * 5, '1000.00') for i in range(12)]

    result = rfm_analysis(sales, now=NOW)

    assert result['criteria']['recency'] == 5
    assert result['criteria']['frequency'] == 6.0
    assert result['criteria']['monetary'] == 12000.0
    assert result['scores'] == {'recency': 5, 'frequency': 5, 'monetary': 5}
    assert result['segment'] == VIP
    assert result['segmentLabel'] == 'VIP'


def test_rfm_recency_buckets():
    assert rfm_analysis([_sale(30, '10')], now=NOW)['scores']['recency'] == 5
    assert rfm_analysis([_sale(45, '10')], now=NOW)['scores']['recency'] == 4
    assert rfm_analysis([_sale(120, '10')], now=NOW)['scores']['recency'] == 2
    assert rfm_analysis([_sale(400, '10')], now=NOW)['scores']['recency'] == 1


def test_segment_rules():
    assert customer_segment(0, Decimal('0'), 0, None) == NEW
    assert customer_segment(3, Decimal('500'), 1.5, 120) == INACTIVE
    assert customer_segment(3, Decimal('500'), 1.5, 120, inactive_days=180) == FREQUENT
    assert customer_segment(10, Decimal('20000'), 3, 10) == VIP
    assert customer_segment(1, Decimal('50'), 1, 10) == REGULAR


def test_create_customer_stores_clean_document(seller):
    customer = CustomerService.create({'name': 'Maria Silva', 'document': '529.982.247-25',
                                       'email': 'Maria@Exemplo.com', 'state': 'pe'}, seller)
    assert customer.document == '52998224725'
    assert customer.email == 'maria@exemplo.com'
    assert customer.state == 'PE'
    assert customer.to_dict()['document'] == '529.982.247-25'


def test_create_customer_rejects_invalid_cpf(seller):
    with pytest.raises(ApiError) as exc:
        CustomerService.create({'name': 'João', 'document': '52998224724'}, seller)
    assert exc.value.status_code == 400
    assert 'document' in exc.value.details


def test_wholesale_customer_requires_cnpj(seller):
    with pytest.raises(ApiError) as exc:
        CustomerService.create({'name': 'Atacadão', 'type': 'WHOLESALE', 'document': '52998224725'}, seller)
    assert exc.value.status_code == 400

    customer = CustomerService.create({'name': 'Atacadão', 'type': 'WHOLESALE',
                                       'document': '11.222.333/0001-81'}, seller)
    assert customer.document == '11222333000181'


def test_duplicate_document_conflicts(factory, seller):
    factory.create_customer(document='52998224725')
    with pytest.raises(ApiError) as exc:
        CustomerService.create({'name': 'Outra Maria', 'document': '52998224725'}, seller)
    assert exc.value.status_code == 409


def test_validate_document_reports_existing_customer(factory):
    existing = factory.create_customer(name='Maria', document='52998224725')

    taken = CustomerService.validate_document({'document': '529.982.247-25'})
    free = CustomerService.validate_document({'document': '11144477735'})

    assert taken['isValid'] is True
    assert taken['isAvailable'] is False
    assert taken['existingCustomer'] == {'id': existing.id, 'name': 'Maria'}
    assert free['isAvailable'] is True


def test_delete_customer_with_sales_deactivates(factory, seller):
    customer = factory.create_customer()
    product = factory.create_product()
    factory.create_sale(seller, customer, [(product, 1)])
    lonely = factory.create_customer()

    assert CustomerService.delete(customer.id, seller)['deactivated'] is True
    assert customer.is_active is False
    assert CustomerService.delete(lonely.id, seller)['deleted'] is True


def test_customer_detail_uses_completed_sales_only(factory, seller):
    customer = factory.create_customer()
    product = factory.create_product(price='100.00')
    done = factory.create_sale(seller, customer, [(product, 2)])
    for step in (SaleService.submit_sale, SaleService.confirm_sale, SaleService.complete_sale):
        step(done.id, seller)
    factory.create_sale(seller, customer, [(product, 1)])

    detail = CustomerService.get(customer.id)

    assert detail['statistics']['totalSales'] == 2
    assert detail['statistics']['completedSales'] == 1
    assert detail['statistics']['totalSpent'] == 200.0
    assert detail['statistics']['favoriteCategories'][0]['categoryName'] == product.category.name
    assert detail['segmentation']['segment'] == REGULAR


def test_list_customers_filters(factory):
    factory.create_customer(name='Ana Varejo', document='52998224725')
    factory.create_customer(name='Loja Atacado', type='WHOLESALE', document='11222333000181')

    wholesale = CustomerService.list({'type': 'wholesale'})
    with_document = CustomerService.list({'search': '529.982'})

    assert [c['name'] for c in wholesale['data']] == ['Loja Atacado']
    assert [c['name'] for c in with_document['data']] == ['Ana Varejo']
    assert wholesale['data'][0]['stats']['purchaseCount'] == 0


def test_export_returns_xlsx_bytes(factory):
    factory.create_customer(name='Planilha')
    buffer = CustomerService.export_xlsx({})
    assert buffer.getvalue()[:2] == b'PK'


def test_customer_endpoints(client, login, seller):
    login(seller)
    response = client.post('/api/customers', json={'name': 'Cliente API', 'document': '11144477735'})
    assert response.status_code == 201
    customer_id = response.get_json()['id']

    response = client.patch(f'/api/customers/{customer_id}', json={'phone': '(81) 99999-8888'})
    assert response.status_code == 200
    assert response.get_json()['phone'] == '(81) 99999-8888'

    response = client.post('/api/customers/validate', json={'document': '11111111111'})
    assert response.get_json()['isValid'] is False


def test_contact_formats_are_checked_only_when_present(seller):
    customer = CustomerService.create({'name': 'Joana Lima', 'document': '11144477735',
                                       'phone': '', 'zipCode': ''}, seller)
    assert customer.id is not None

    with pytest.raises(ApiError) as exc:
        CustomerService.create({'name': 'Pedro Alves', 'document': '52998224725',
                                'email': 'pedro@', 'phone': '12', 'zipCode': 'abc'}, seller)
    assert exc.value.status_code == 400
    assert set(exc.value.details) == {'email', 'phone', 'zip_code'}
