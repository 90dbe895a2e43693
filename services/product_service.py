import logging

from sqlalchemy import func, or_

from forms.product_forms import (ProductForm, UpdateProductForm, ProductFiltersForm, ProductSearchForm,
                                 BulkImportForm)
from models import db, to_decimal, Product, Category, Supplier, Inventory, SaleItem
from models.sale import COMPLETED, Sale
from services.errors import ApiError
from services.inventory_service import InventoryService
from services.utils import atomic, page_params, paginate, order_by, like, log_action

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    'name': Product.name,
    'price': Product.price,
    'code': Product.code,
    'createdAt': Product.created_at,
}


class ProductService:

    @staticmethod
    def _get(product_id):
        product = db.session.get(Product, product_id)
        if product is None:
            raise ApiError('Produto não encontrado', 404)
        return product

    @staticmethod
    def _active_category(category_id):
        category = db.session.get(Category, category_id)
        if category is None:
            raise ApiError('Categoria não encontrada', 404)
        if not category.is_active:
            raise ApiError('Categoria inativa', 400)
        return category

    @staticmethod
    def _active_supplier(supplier_id):
        supplier = db.session.get(Supplier, supplier_id)
        if supplier is None:
            raise ApiError('Fornecedor não encontrado', 404)
        if not supplier.is_active:
            raise ApiError('Fornecedor inativo', 400)
        return supplier

    @staticmethod
    def _check_unique(code=None, barcode=None, exclude_id=None):
        if code:
            query = Product.query.filter(func.upper(Product.code) == code.upper())
            if exclude_id is not None:
                query = query.filter(Product.id != exclude_id)
            if query.first() is not None:
                raise ApiError(f'Código {code} já está em uso', 409)
        if barcode:
            query = Product.query.filter(Product.barcode == barcode)
            if exclude_id is not None:
                query = query.filter(Product.id != exclude_id)
            if query.first() is not None:
                raise ApiError(f'Código de barras {barcode} já está em uso', 409)

    @staticmethod
    def list(args=None):
        form = ProductFiltersForm.from_args(args).validate_or_raise()
        query = Product.query.outerjoin(Inventory, Inventory.product_id == Product.id)
        if form.search.data:
            term = like(form.search.data)
            query = query.filter(or_(Product.name.ilike(term), Product.code.ilike(term),
                                     Product.barcode.ilike(term), Product.description.ilike(term)))
        if form.category_id.data:
            query = query.filter(Product.category_id == form.category_id.data)
        if form.supplier_id.data:
            query = query.filter(Product.supplier_id == form.supplier_id.data)
        if form.is_active.data is not None:
            query = query.filter(Product.is_active.is_(form.is_active.data))
        if form.min_price.data is not None:
            query = query.filter(Product.price >= form.min_price.data)
        if form.max_price.data is not None:
            query = query.filter(Product.price <= form.max_price.data)
        if form.has_stock.data is not None:
            in_stock = func.coalesce(Inventory.quantity, 0) > 0
            query = query.filter(in_stock if form.has_stock.data else ~in_stock)
        if form.low_stock.data:
            query = query.filter(func.coalesce(Inventory.quantity, 0) <= func.coalesce(Inventory.min_stock, 10))
        query = order_by(query, SORT_COLUMNS[form.sort_by.data], form.sort_order.data)
        page, limit = page_params(form)
        return paginate(query, page, limit)

    @staticmethod
    def get(product_id):
        product = ProductService._get(product_id)
        data = product.to_dict()
        sold = db.session.query(
            func.coalesce(func.sum(SaleItem.quantity), 0), func.coalesce(func.sum(SaleItem.total), 0),
        ).join(Sale, SaleItem.sale_id == Sale.id).filter(
            SaleItem.product_id == product.id, Sale.status == COMPLETED).one()
        data['salesSummary'] = {'quantitySold': int(sold[0]), 'revenue': float(to_decimal(sold[1]))}
        return data

    @staticmethod
    def get_by_code(code):
        product = Product.query.filter(func.upper(Product.code) == code.strip().upper()).first()
        if product is None:
            product = Product.query.filter(Product.barcode == code.strip()).first()
        if product is None:
            raise ApiError('Produto não encontrado', 404)
        return product

    @staticmethod
    def _build(fields, user):
        """Product plus its stock row from validated create/import fields."""
        category = ProductService._active_category(fields['category_id'])
        supplier = ProductService._active_supplier(fields['supplier_id']) if fields.get('supplier_id') else None
        code = fields['code'].strip().upper()
        ProductService._check_unique(code, fields.get('barcode') or None)
        product = Product(
            name=fields['name'].strip(),
            description=fields.get('description') or None,
            price=to_decimal(fields['price']),
            code=code,
            barcode=fields.get('barcode') or None,
            category=category,
            supplier=supplier,
            is_active=True if fields.get('is_active') is None else fields['is_active'],
        )
        db.session.add(product)
        InventoryService.create_for_product(
            product, user,
            quantity=fields.get('initial_stock') or 0,
            min_stock=fields.get('min_stock'),
            max_stock=fields.get('max_stock'),
            location=fields.get('location') or None,
        )
        return product

    @staticmethod
    def create(data, user):
        form = ProductForm.from_json(data).validate_or_raise()
        with atomic():
            product = ProductService._build(form.data, user)
        log_action(user, 'product.create', product.code)
        return product

    @staticmethod
    def update(product_id, data, user):
        product = ProductService._get(product_id)
        form = UpdateProductForm.from_json(data).validate_or_raise()
        changes = form.provided()
        if changes.get('code'):
            changes['code'] = changes['code'].strip().upper()
        ProductService._check_unique(changes.get('code'), changes.get('barcode'), exclude_id=product.id)
        with atomic():
            if changes.get('category_id') and changes['category_id'] != product.category_id:
                product.category = ProductService._active_category(changes['category_id'])
            if 'supplier_id' in changes:
                product.supplier = (ProductService._active_supplier(changes['supplier_id'])
                                    if changes['supplier_id'] else None)
            if changes.get('name'):
                product.name = changes['name'].strip()
            if changes.get('code'):
                product.code = changes['code']
            if changes.get('price') is not None:
                product.price = to_decimal(changes['price'])
            if 'description' in changes:
                product.description = changes['description'] or None
            if 'barcode' in changes:
                product.barcode = changes['barcode'] or None
            if 'is_active' in changes:
                product.is_active = changes['is_active']
        log_action(user, 'product.update', product.code, fields=','.join(changes))
        return product

    @staticmethod
    def delete(product_id, user):
        product = ProductService._get(product_id)
        if product.sale_items.count() > 0:
            raise ApiError('Produto possui vendas registradas e não pode ser excluído', 400)
        if product.movements.count() > 0:
            raise ApiError('Produto possui movimentações de estoque e não pode ser excluído', 400)
        with atomic():
            product.is_active = False
        log_action(user, 'product.delete', product.code)
        return product

    @staticmethod
    def search(args=None):
        form = ProductSearchForm.from_args(args).validate_or_raise()
        term = like(form.q.data)
        query = Product.query.filter(Product.is_active.is_(True),
                                     or_(Product.name.ilike(term), Product.code.ilike(term),
                                         Product.barcode.ilike(term)))
        if form.category_id.data:
            query = query.filter(Product.category_id == form.category_id.data)
        products = query.order_by(Product.name).limit(form.limit.data or 10).all()
        return [p.to_dict() for p in products]

    @staticmethod
    def active():
        return [p.to_dict(with_inventory=False)
                for p in Product.query.filter(Product.is_active.is_(True)).order_by(Product.name).all()]

    @staticmethod
    def by_category(category_id):
        category = db.session.get(Category, category_id)
        if category is None:
            raise ApiError('Categoria não encontrada', 404)
        return [p.to_dict() for p in category.products.filter_by(is_active=True).order_by(Product.name).all()]

    @staticmethod
    def by_supplier(supplier_id):
        supplier = db.session.get(Supplier, supplier_id)
        if supplier is None:
            raise ApiError('Fornecedor não encontrado', 404)
        return [p.to_dict() for p in supplier.products.filter_by(is_active=True).order_by(Product.name).all()]

    @staticmethod
    def check_code(code, exclude_id=None):
        query = Product.query.filter(func.upper(Product.code) == code.strip().upper())
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        return {'code': code.strip().upper(), 'isAvailable': query.first() is None}

    @staticmethod
    def select_options(category_id=None):
        query = Product.query.filter(Product.is_active.is_(True))
        if category_id:
            query = query.filter(Product.category_id == category_id)
        return [{
            'value': p.id,
            'label': f'{p.code} - {p.name}',
            'price': float(p.price),
            'stock': p.stock,
        } for p in query.order_by(Product.name).all()]

    @staticmethod
    def statistics():
        total = Product.query.count()
        active = Product.query.filter(Product.is_active.is_(True)).count()
        avg_price = db.session.query(func.avg(Product.price)).filter(Product.is_active.is_(True)).scalar()
        by_category = (db.session.query(Category.name, func.count(Product.id))
                       .join(Product, Product.category_id == Category.id)
                       .group_by(Category.name).order_by(func.count(Product.id).desc()).all())
        without_stock = (Product.query.outerjoin(Inventory, Inventory.product_id == Product.id)
                         .filter(Product.is_active.is_(True), func.coalesce(Inventory.quantity, 0) == 0).count())
        return {
            'total': total,
            'active': active,
            'inactive': total - active,
            'averagePrice': float(to_decimal(avg_price)) if avg_price is not None else 0.0,
            'withoutStock': without_stock,
            'byCategory': [{'category': name, 'count': count} for name, count in by_category],
        }

    @staticmethod
    def bulk_import(data, user):
        """Create many products at once; rows fail individually without aborting the batch."""
        form = BulkImportForm.from_json(data).validate_or_raise()
        created, skipped, errors = [], [], []
        for index, entry in enumerate(form.products.entries):
            fields = entry.form.data
            code = (fields.get('code') or '').strip().upper()
            if form.skip_existing.data and Product.query.filter(func.upper(Product.code) == code).first():
                skipped.append({'row': index, 'code': code})
                continue
            try:
                with atomic():
                    product = ProductService._build(fields, user)
                created.append(product.to_dict(with_inventory=False))
            except ApiError as exc:
                errors.append({'row': index, 'code': code, 'error': exc.message})
        log_action(user, 'product.bulk_import', None, created=len(created), errors=len(errors))
        return {
            'created': len(created),
            'skipped': len(skipped),
            'failed': len(errors),
            'products': created,
            'skippedRows': skipped,
            'errors': errors,
        }
