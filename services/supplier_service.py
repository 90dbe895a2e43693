import logging

from sqlalchemy import func, or_

from forms.supplier_forms import SupplierForm, UpdateSupplierForm, SupplierFiltersForm
from forms.validators import clean_document
from models import db, to_decimal, Supplier, Product, Sale, SaleItem
from models.sale import COMPLETED
from services.errors import ApiError
from services.export import to_xlsx
from services.utils import atomic, page_params, paginate, order_by, like, log_action

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    'name': Supplier.name,
    'createdAt': Supplier.created_at,
    'state': Supplier.state,
}

EXPORT_COLUMNS = {
    'name': 'Nome',
    'cnpj': 'CNPJ',
    'contactPerson': 'Contato',
    'email': 'Email',
    'phone': 'Telefone',
    'city': 'Cidade',
    'state': 'UF',
    'isActive': 'Ativo',
}

TEXT_FIELDS = ('name', 'contact_person', 'phone', 'address', 'city', 'zip_code', 'website', 'notes')


class SupplierService:

    @staticmethod
    def _get(supplier_id):
        supplier = db.session.get(Supplier, supplier_id)
        if supplier is None:
            raise ApiError('Fornecedor não encontrado', 404)
        return supplier

    @staticmethod
    def _check_unique(email=None, cnpj=None, exclude_id=None):
        for column, value, message in ((Supplier.email, email, 'Email já cadastrado para outro fornecedor'),
                                       (Supplier.cnpj, cnpj, 'CNPJ já cadastrado para outro fornecedor')):
            if not value:
                continue
            query = Supplier.query.filter(column == value)
            if exclude_id is not None:
                query = query.filter(Supplier.id != exclude_id)
            if query.first() is not None:
                raise ApiError(message, 409)

    @staticmethod
    def list(args=None):
        form = SupplierFiltersForm.from_args(args).validate_or_raise()
        query = Supplier.query
        if form.search.data:
            term = like(form.search.data)
            conditions = [Supplier.name.ilike(term), Supplier.contact_person.ilike(term),
                          Supplier.email.ilike(term), Supplier.city.ilike(term)]
            digits = clean_document(form.search.data)
            if digits:
                conditions.append(Supplier.cnpj.like(f'%{digits}%'))
            query = query.filter(or_(*conditions))
        if form.state.data:
            query = query.filter(Supplier.state == form.state.data.upper())
        if form.is_active.data is not None:
            query = query.filter(Supplier.is_active.is_(form.is_active.data))
        if form.has_cnpj.data is not None:
            has_cnpj = Supplier.cnpj.isnot(None)
            query = query.filter(has_cnpj if form.has_cnpj.data else ~has_cnpj)
        query = order_by(query, SORT_COLUMNS[form.sort_by.data], form.sort_order.data)
        page, limit = page_params(form)
        return paginate(query, page, limit, SupplierService._list_item)

    @staticmethod
    def _list_item(supplier):
        data = supplier.to_dict()
        data['productCount'] = supplier.products.count()
        return data

    @staticmethod
    def get(supplier_id):
        return SupplierService._list_item(SupplierService._get(supplier_id))

    @staticmethod
    def active():
        return [{'value': s.id, 'label': s.name}
                for s in Supplier.query.filter(Supplier.is_active.is_(True)).order_by(Supplier.name).all()]

    @staticmethod
    def search(term, limit=10):
        query = Supplier.query.filter(Supplier.is_active.is_(True))
        if term:
            query = query.filter(or_(Supplier.name.ilike(like(term)), Supplier.contact_person.ilike(like(term))))
        return [s.to_dict() for s in query.order_by(Supplier.name).limit(limit).all()]

    @staticmethod
    def by_state(state):
        suppliers = (Supplier.query.filter(Supplier.state == state.upper(), Supplier.is_active.is_(True))
                     .order_by(Supplier.name).all())
        return [s.to_dict() for s in suppliers]

    @staticmethod
    def create(data, user):
        form = SupplierForm.from_json(data).validate_or_raise()
        cnpj = clean_document(form.cnpj.data) or None
        email = (form.email.data or '').strip().lower() or None
        SupplierService._check_unique(email, cnpj)
        with atomic():
            supplier = Supplier(
                email=email,
                cnpj=cnpj,
                state=form.state.data.upper() if form.state.data else None,
                is_active=True if form.is_active.data is None else form.is_active.data,
            )
            for field in TEXT_FIELDS:
                value = getattr(form, field).data
                setattr(supplier, field, value.strip() if value else None)
            db.session.add(supplier)
        log_action(user, 'supplier.create', supplier.id, name=supplier.name)
        return supplier

    @staticmethod
    def update(supplier_id, data, user):
        supplier = SupplierService._get(supplier_id)
        form = UpdateSupplierForm.from_json(data).validate_or_raise()
        changes = form.provided()
        if 'cnpj' in changes:
            changes['cnpj'] = clean_document(changes['cnpj']) or None
        if 'email' in changes:
            changes['email'] = (changes['email'] or '').strip().lower() or None
        SupplierService._check_unique(changes.get('email'), changes.get('cnpj'), exclude_id=supplier.id)
        with atomic():
            for field in TEXT_FIELDS:
                if field in changes:
                    if field == 'name' and not changes[field]:
                        continue
                    value = changes[field]
                    setattr(supplier, field, value.strip() if value else None)
            if 'email' in changes:
                supplier.email = changes['email']
            if 'cnpj' in changes:
                supplier.cnpj = changes['cnpj']
            if 'state' in changes:
                supplier.state = changes['state'].upper() if changes['state'] else None
            if 'is_active' in changes:
                supplier.is_active = changes['is_active']
        log_action(user, 'supplier.update', supplier.id, fields=','.join(changes))
        return supplier

    @staticmethod
    def delete(supplier_id, user):
        supplier = SupplierService._get(supplier_id)
        count = supplier.products.count()
        if count:
            raise ApiError(f'Fornecedor possui {count} produto(s) vinculados e não pode ser excluído', 400)
        with atomic():
            supplier.is_active = False
        log_action(user, 'supplier.delete', supplier_id)
        return supplier

    @staticmethod
    def products(supplier_id):
        supplier = SupplierService._get(supplier_id)
        return [p.to_dict() for p in supplier.products.order_by(Product.name).all()]

    @staticmethod
    def performance(supplier_id):
        supplier = SupplierService._get(supplier_id)
        totals = (db.session.query(
            func.count(func.distinct(Sale.id)),
            func.coalesce(func.sum(SaleItem.total), 0),
            func.coalesce(func.sum(SaleItem.quantity), 0),
            func.max(Sale.sale_date),
        ).select_from(SaleItem)
            .join(Sale, SaleItem.sale_id == Sale.id)
            .join(Product, SaleItem.product_id == Product.id)
            .filter(Product.supplier_id == supplier.id, Sale.status == COMPLETED).one())
        sales_count, revenue, quantity, last_sale = totals
        revenue = to_decimal(revenue)
        return {
            'supplierId': supplier.id,
            'supplierName': supplier.name,
            'totalProducts': supplier.products.count(),
            'activeProducts': supplier.products.filter_by(is_active=True).count(),
            'totalSales': sales_count,
            'totalRevenue': float(revenue),
            'totalQuantity': int(quantity),
            'averageOrderValue': float(to_decimal(revenue / sales_count)) if sales_count else 0.0,
            'lastSale': last_sale.isoformat() if last_sale else None,
        }

    @staticmethod
    def statistics():
        total = Supplier.query.count()
        active = Supplier.query.filter(Supplier.is_active.is_(True)).count()
        by_state = (db.session.query(Supplier.state, func.count(Supplier.id))
                    .filter(Supplier.state.isnot(None))
                    .group_by(Supplier.state).order_by(func.count(Supplier.id).desc()).all())
        with_products = Supplier.query.filter(Supplier.products.any()).count()
        return {
            'total': total,
            'active': active,
            'inactive': total - active,
            'withProducts': with_products,
            'withCnpj': Supplier.query.filter(Supplier.cnpj.isnot(None)).count(),
            'byState': [{'state': state, 'count': count} for state, count in by_state],
        }

    @staticmethod
    def export_xlsx():
        rows = [s.to_dict() for s in Supplier.query.order_by(Supplier.name).all()]
        return to_xlsx(rows, EXPORT_COLUMNS, sheet_name='Fornecedores')
