import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_

from forms.customer_forms import CustomerForm, UpdateCustomerForm, CustomerFiltersForm, DocumentValidationForm
from forms.sale_forms import SaleFiltersForm
from forms.validators import clean_document, document_matches_customer_type, validate_document
from models import db, to_decimal, Customer, Sale
from models.customer import RETAIL, CUSTOMER_TYPES
from models.sale import COMPLETED
from services.errors import ApiError
from services.export import to_xlsx
from services.utils import atomic, page_params, paginate, order_by, like, log_action

logger = logging.getLogger(__name__)

NEW = 'NEW'
INACTIVE = 'INACTIVE'
VIP = 'VIP'
FREQUENT = 'FREQUENT'
REGULAR = 'REGULAR'

SEGMENT_LABELS = {
    VIP: 'VIP',
    FREQUENT: 'Frequente',
    REGULAR: 'Regular',
    NEW: 'Novo',
    INACTIVE: 'Inativo',
}

VIP_MIN_SPENT = Decimal('10000')

SORT_COLUMNS = {
    'name': Customer.name,
    'createdAt': Customer.created_at,
    'city': Customer.city,
}

EXPORT_COLUMNS = {
    'name': 'Nome',
    'document': 'CPF/CNPJ',
    'typeLabel': 'Tipo',
    'email': 'Email',
    'phone': 'Telefone',
    'city': 'Cidade',
    'state': 'UF',
    'isActive': 'Ativo',
}


def _score(value, thresholds):
    """1..5 by how many ascending thresholds the value reaches."""
    return 1 + sum(1 for threshold in thresholds if value >= threshold)


def customer_segment(purchase_count, total_spent, frequency, days_since_last, inactive_days=90):
    if not purchase_count or days_since_last is None:
        return NEW
    if days_since_last > inactive_days:
        return INACTIVE
    if total_spent > VIP_MIN_SPENT and frequency > 2:
        return VIP
    if frequency > 1:
        return FREQUENT
    return REGULAR


def rfm_analysis(sales, now=None, inactive_days=90):
    """RFM figures over a customer's completed sales."""
    now = now or datetime.utcnow()
    dates = sorted(s.sale_date for s in sales if s.sale_date)
    total_spent = to_decimal(sum((to_decimal(s.total) for s in sales), Decimal('0')))
    count = len(sales)
    if dates:
        recency = (now - dates[-1]).days
        months = max((now - dates[0]).days / 30, 1)
        frequency = round(count / months, 2)
    else:
        recency = None
        frequency = 0.0
    scores = {
        'recency': 1 if recency is None else 6 - _score(recency, (31, 61, 91, 181)),
        'frequency': _score(frequency, (0.5, 1, 2, 4)) if count else 1,
        'monetary': _score(total_spent, (200, 1000, 5000, 10000)) if count else 1,
    }
    segment = customer_segment(count, total_spent, frequency, recency, inactive_days)
    return {
        'segment': segment,
        'segmentLabel': SEGMENT_LABELS[segment],
        'criteria': {
            'recency': recency,
            'frequency': frequency,
            'monetary': float(total_spent),
        },
        'scores': scores,
        'score': round(sum(scores.values()) / 3, 2),
    }


class CustomerService:

    @staticmethod
    def _get(customer_id):
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise ApiError('Cliente não encontrado', 404)
        return customer

    @staticmethod
    def _check_document(document, customer_type, exclude_id=None):
        if not document:
            return None
        digits = clean_document(document)
        if not document_matches_customer_type(customer_type, digits):
            raise ApiError('Cliente varejo requer CPF e cliente atacado requer CNPJ', 400)
        query = Customer.query.filter(Customer.document == digits)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first() is not None:
            raise ApiError('Documento já cadastrado para outro cliente', 409)
        return digits

    @staticmethod
    def list(args=None):
        form = CustomerFiltersForm.from_args(args).validate_or_raise()
        query = Customer.query
        if form.search.data:
            term = like(form.search.data)
            digits = clean_document(form.search.data)
            conditions = [Customer.name.ilike(term), Customer.email.ilike(term), Customer.phone.ilike(term)]
            if digits:
                conditions.append(Customer.document.like(f'%{digits}%'))
            query = query.filter(or_(*conditions))
        if form.type.data:
            query = query.filter(Customer.type == form.type.data)
        if form.city.data:
            query = query.filter(Customer.city.ilike(like(form.city.data)))
        if form.state.data:
            query = query.filter(Customer.state == form.state.data.upper())
        if form.is_active.data is not None:
            query = query.filter(Customer.is_active.is_(form.is_active.data))
        if form.has_email.data is not None:
            has_email = Customer.email.isnot(None) & (Customer.email != '')
            query = query.filter(has_email if form.has_email.data else ~has_email)
        if form.has_document.data is not None:
            has_document = Customer.document.isnot(None)
            query = query.filter(has_document if form.has_document.data else ~has_document)
        if form.has_purchases.data is not None:
            purchased = Customer.sales.any()
            query = query.filter(purchased if form.has_purchases.data else ~purchased)
        query = order_by(query, SORT_COLUMNS[form.sort_by.data], form.sort_order.data)
        page, limit = page_params(form)
        return paginate(query, page, limit, CustomerService._list_item)

    @staticmethod
    def _list_item(customer):
        data = customer.to_dict()
        count, spent, last = db.session.query(
            func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0), func.max(Sale.sale_date),
        ).filter(Sale.customer_id == customer.id, Sale.status == COMPLETED).one()
        data['stats'] = {
            'purchaseCount': count,
            'totalSpent': float(to_decimal(spent)),
            'lastPurchase': last.isoformat() if last else None,
        }
        return data

    @staticmethod
    def get(customer_id):
        customer = CustomerService._get(customer_id)
        completed = (customer.sales.filter(Sale.status == COMPLETED)
                     .order_by(Sale.sale_date.desc()).all())
        total_spent = to_decimal(sum((to_decimal(s.total) for s in completed), Decimal('0')))
        average = to_decimal(total_spent / len(completed)) if completed else Decimal('0.00')

        categories = defaultdict(lambda: {'purchaseCount': 0, 'totalSpent': Decimal('0')})
        for sale in completed:
            for item in sale.items:
                name = item.product.category.name
                categories[name]['purchaseCount'] += item.quantity
                categories[name]['totalSpent'] += to_decimal(item.total)
        favorites = sorted(
            ({'categoryName': name, 'purchaseCount': v['purchaseCount'], 'totalSpent': float(v['totalSpent'])}
             for name, v in categories.items()),
            key=lambda c: c['totalSpent'], reverse=True)[:5]

        data = customer.to_dict()
        data['statistics'] = {
            'totalSales': customer.sales.count(),
            'completedSales': len(completed),
            'totalSpent': float(total_spent),
            'averageOrderValue': float(average),
            'firstPurchase': completed[-1].sale_date.isoformat() if completed else None,
            'lastPurchase': completed[0].sale_date.isoformat() if completed else None,
            'favoriteCategories': favorites,
        }
        data['recentSales'] = [{
            'id': s.id,
            'saleNumber': s.sale_number,
            'total': float(s.total),
            'saleDate': s.sale_date.isoformat() if s.sale_date else None,
            'itemCount': len(s.items),
        } for s in completed[:5]]
        data['segmentation'] = rfm_analysis(
            completed, inactive_days=current_app.config.get('INACTIVE_CUSTOMER_DAYS', 90))
        return data

    @staticmethod
    def create(data, user):
        form = CustomerForm.from_json(data).validate_or_raise()
        customer_type = form.type.data or RETAIL
        document = CustomerService._check_document(form.document.data, customer_type)
        with atomic():
            customer = Customer(
                name=form.name.data.strip(),
                email=(form.email.data or '').strip().lower() or None,
                phone=form.phone.data or None,
                document=document,
                type=customer_type,
                address=form.address.data or None,
                neighborhood=form.neighborhood.data or None,
                city=form.city.data or None,
                state=form.state.data.upper() if form.state.data else None,
                zip_code=form.zip_code.data or None,
                is_active=True if form.is_active.data is None else form.is_active.data,
            )
            db.session.add(customer)
        log_action(user, 'customer.create', customer.id)
        return customer

    @staticmethod
    def update(customer_id, data, user):
        customer = CustomerService._get(customer_id)
        form = UpdateCustomerForm.from_json(data).validate_or_raise()
        changes = form.provided()
        customer_type = changes.get('type') or customer.type
        document = changes['document'] if 'document' in changes else customer.document
        if document:
            if clean_document(document) == customer.document and customer_type == customer.type:
                digits = customer.document
            else:
                digits = CustomerService._check_document(document, customer_type, exclude_id=customer.id)
        else:
            digits = None
        with atomic():
            for field in ('name', 'phone', 'address', 'neighborhood', 'city', 'zip_code'):
                if field in changes:
                    value = changes[field]
                    setattr(customer, field, value.strip() if value else None)
            if 'email' in changes:
                customer.email = (changes['email'] or '').strip().lower() or None
            if 'state' in changes:
                customer.state = changes['state'].upper() if changes['state'] else None
            if 'is_active' in changes:
                customer.is_active = changes['is_active']
            customer.type = customer_type
            customer.document = digits
        log_action(user, 'customer.update', customer.id, fields=','.join(changes))
        return customer

    @staticmethod
    def delete(customer_id, user):
        """Customers with sales are deactivated, others removed."""
        customer = CustomerService._get(customer_id)
        with atomic():
            if customer.sales.count() > 0:
                customer.is_active = False
                result = {'deleted': False, 'deactivated': True,
                          'message': 'Cliente possui vendas e foi desativado'}
            else:
                db.session.delete(customer)
                result = {'deleted': True, 'deactivated': False, 'message': 'Cliente excluído com sucesso'}
        log_action(user, 'customer.delete', customer_id, deactivated=result['deactivated'])
        return result

    @staticmethod
    def get_sales(customer_id, args, user):
        customer = CustomerService._get(customer_id)
        form = SaleFiltersForm.from_args(args).validate_or_raise()
        query = customer.sales
        if user.is_salesperson():
            query = query.filter(Sale.user_id == user.id)
        if form.status.data:
            query = query.filter(Sale.status == form.status.data)
        query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
        page, limit = page_params(form)
        return paginate(query, page, limit, lambda sale: sale.to_dict(with_items=False))

    @staticmethod
    def validate_document(data):
        form = DocumentValidationForm.from_json(data).validate_or_raise()
        result = validate_document(form.document.data, form.type.data)
        digits = clean_document(form.document.data)
        existing = Customer.query.filter(Customer.document == digits).first() if result['isValid'] else None
        result['isAvailable'] = existing is None
        result['existingCustomer'] = {'id': existing.id, 'name': existing.name} if existing else None
        return result

    @staticmethod
    def statistics():
        total = Customer.query.count()
        active = Customer.query.filter(Customer.is_active.is_(True)).count()
        by_type = dict(db.session.query(Customer.type, func.count(Customer.id)).group_by(Customer.type).all())
        by_state = (db.session.query(Customer.state, func.count(Customer.id))
                    .filter(Customer.state.isnot(None))
                    .group_by(Customer.state).order_by(func.count(Customer.id).desc()).limit(10).all())
        month_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        with_purchases = Customer.query.filter(Customer.sales.any(Sale.status == COMPLETED)).count()
        return {
            'total': total,
            'active': active,
            'inactive': total - active,
            'byType': {t: by_type.get(t, 0) for t in CUSTOMER_TYPES},
            'byState': [{'state': state, 'count': count} for state, count in by_state],
            'newThisMonth': Customer.query.filter(Customer.created_at >= month_start).count(),
            'withPurchases': with_purchases,
        }

    @staticmethod
    def export_xlsx(args=None):
        form = CustomerFiltersForm.from_args(args).validate_or_raise()
        query = Customer.query
        if form.is_active.data is not None:
            query = query.filter(Customer.is_active.is_(form.is_active.data))
        if form.type.data:
            query = query.filter(Customer.type == form.type.data)
        rows = [c.to_dict() for c in query.order_by(Customer.name).all()]
        return to_xlsx(rows, EXPORT_COLUMNS, sheet_name='Clientes')
