"""
Sale lifecycle: creation, item edits with total recomputation, status
transitions and the stock movements tied to them.
"""
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from flask import current_app
from flask_babel import format_currency, format_datetime
from sqlalchemy import func, or_

from forms.sale_forms import (CreateSaleForm, UpdateSaleForm, AddSaleItemForm, UpdateSaleItemForm,
                              ValidateStockForm, ApplyDiscountForm, CancelSaleForm, SaleFiltersForm,
                              PERCENTAGE, MAX_AMOUNT)
from models import db, to_decimal, Sale, SaleItem, Product, Customer
from models.sale import DRAFT, PENDING, CONFIRMED, COMPLETED, CANCELLED, REFUNDED
from services.errors import ApiError
from services.inventory_service import InventoryService
from services.utils import atomic, page_params, paginate, order_by, like, log_action

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    'saleDate': Sale.sale_date,
    'total': Sale.total,
    'status': Sale.status,
    'createdAt': Sale.created_at,
}


def _check_item_total(item):
    if item.total < 0:
        raise ApiError(f'Desconto do item {item.product.name} maior que o valor do item', 400)


def _check_sale_total(sale):
    if sale.total < 0:
        raise ApiError('Total da venda não pode ser negativo', 400)
    if sale.total > MAX_AMOUNT:
        raise ApiError('Total da venda excede o valor máximo permitido', 400)


def _append_note(sale, text):
    notes = f'{sale.notes}\n{text}' if sale.notes else text
    sale.notes = notes[:1000]


class SaleService:

    # lookups

    @staticmethod
    def get_sale(sale_id, user, lock=False):
        if lock:
            sale = db.session.get(Sale, sale_id, with_for_update=True, populate_existing=True)
        else:
            sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise ApiError('Venda não encontrada', 404)
        if not user.can_access_sale(sale):
            raise ApiError('Acesso negado a esta venda', 403)
        return sale

    @staticmethod
    def _editable_sale(sale_id, user):
        sale = SaleService.get_sale(sale_id, user)
        if not sale.is_editable():
            raise ApiError(f'Venda não pode ser alterada no status {sale.get_status_display()}', 409)
        return sale

    @staticmethod
    def _active_customer(customer_id):
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise ApiError('Cliente não encontrado', 404)
        if not customer.is_active:
            raise ApiError('Cliente inativo', 400)
        return customer

    @staticmethod
    def _active_product(product_id):
        product = db.session.get(Product, product_id)
        if product is None:
            raise ApiError(f'Produto {product_id} não encontrado', 404)
        if not product.is_active:
            raise ApiError(f'Produto inativo: {product.name}', 400)
        return product

    @staticmethod
    def _require_stock(product, quantity):
        if product.stock < quantity:
            raise ApiError(
                f'Estoque insuficiente para {product.name}: disponível {product.stock}, solicitado {quantity}',
                400)

    @staticmethod
    def _transition(sale, status):
        if not sale.can_transition_to(status):
            raise ApiError(f'Transição de status inválida: {sale.status} → {status}', 409)
        sale.status = status

    # listing

    @staticmethod
    def list_sales(args, user):
        form = SaleFiltersForm.from_args(args).validate_or_raise()
        query = Sale.query.join(Customer, Sale.customer_id == Customer.id)
        if user.is_salesperson():
            query = query.filter(Sale.user_id == user.id)
        elif form.user_id.data:
            query = query.filter(Sale.user_id == form.user_id.data)
        if form.customer_id.data:
            query = query.filter(Sale.customer_id == form.customer_id.data)
        if form.status.data:
            query = query.filter(Sale.status == form.status.data)
        if form.date_from.data:
            query = query.filter(Sale.sale_date >= datetime.combine(form.date_from.data, time.min))
        if form.date_to.data:
            query = query.filter(Sale.sale_date < datetime.combine(form.date_to.data, time.min) + timedelta(days=1))
        if form.min_total.data is not None:
            query = query.filter(Sale.total >= form.min_total.data)
        if form.max_total.data is not None:
            query = query.filter(Sale.total <= form.max_total.data)
        if form.search.data:
            term = like(form.search.data)
            query = query.filter(or_(Customer.name.ilike(term), Sale.notes.ilike(term)))

        summary = SaleService._summary(query)
        query = order_by(query, SORT_COLUMNS[form.sort_by.data], form.sort_order.data).order_by(Sale.id.desc())
        page, limit = page_params(form)
        result = paginate(query, page, limit, lambda sale: sale.to_dict(with_items=False))
        result['summary'] = summary
        return result

    @staticmethod
    def _summary(query):
        count, revenue = query.with_entities(
            func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0)).one()
        quantity = db.session.query(func.coalesce(func.sum(SaleItem.quantity), 0)).filter(
            SaleItem.sale_id.in_(query.with_entities(Sale.id).statement)).scalar()
        revenue = to_decimal(revenue)
        average = to_decimal(revenue / count) if count else Decimal('0.00')
        return {
            'totalSales': count,
            'totalRevenue': float(revenue),
            'averageOrderValue': float(average),
            'totalQuantity': int(quantity or 0),
        }

    # creation and edits

    @staticmethod
    def create_sale(data, user):
        form = CreateSaleForm.from_json(data).validate_or_raise()
        customer = SaleService._active_customer(form.customer_id.data)

        lines = []
        for entry in form.items.entries:
            fields = entry.form
            product = SaleService._active_product(fields.product_id.data)
            lines.append((product, fields))

        stock = InventoryService.check_stock([(p.id, f.quantity.data) for p, f in lines])
        if not stock['isValid']:
            raise ApiError('Estoque insuficiente', 400, details=stock['validationResults'])

        with atomic():
            sale = Sale(
                user=user,
                customer=customer,
                status=DRAFT,
                discount=to_decimal(form.discount.data),
                tax=to_decimal(form.tax.data),
                notes=form.notes.data or None,
                sale_date=datetime.utcnow(),
            )
            for product, fields in lines:
                item = SaleItem(
                    product=product,
                    quantity=fields.quantity.data,
                    unit_price=to_decimal(fields.unit_price.data if fields.unit_price.data is not None
                                          else product.price),
                    discount=to_decimal(fields.discount.data),
                )
                item.calculate_total()
                _check_item_total(item)
                sale.items.append(item)
            sale.recalculate_total()
            _check_sale_total(sale)
            db.session.add(sale)
        log_action(user, 'sale.create', sale.sale_number, total=sale.total, items=len(sale.items))
        return sale

    @staticmethod
    def update_sale(sale_id, data, user):
        sale = SaleService._editable_sale(sale_id, user)
        form = UpdateSaleForm.from_json(data).validate_or_raise()
        changes = form.provided()
        with atomic():
            if 'customer_id' in changes and changes['customer_id'] != sale.customer_id:
                sale.customer = SaleService._active_customer(changes['customer_id'])
            if 'notes' in changes:
                sale.notes = changes['notes'] or None
            if 'discount' in changes:
                sale.discount = to_decimal(changes['discount'])
            if 'tax' in changes:
                sale.tax = to_decimal(changes['tax'])
            sale.recalculate_total()
            _check_sale_total(sale)
        log_action(user, 'sale.update', sale.sale_number, fields=','.join(changes))
        return sale

    @staticmethod
    def apply_discount(sale_id, data, user):
        sale = SaleService._editable_sale(sale_id, user)
        form = ApplyDiscountForm.from_json(data).validate_or_raise()
        value = to_decimal(form.value.data)
        if form.type.data == PERCENTAGE:
            discount = to_decimal(sale.subtotal * value / 100)
        else:
            discount = value
        with atomic():
            sale.discount = discount
            sale.recalculate_total()
            _check_sale_total(sale)
            if form.reason.data:
                _append_note(sale, f'Desconto: {form.reason.data}')
        log_action(user, 'sale.discount', sale.sale_number, type=form.type.data, value=value)
        return sale

    @staticmethod
    def add_item(sale_id, data, user):
        sale = SaleService._editable_sale(sale_id, user)
        form = AddSaleItemForm.from_json(data).validate_or_raise()
        product = SaleService._active_product(form.product_id.data)
        if sale.find_item_by_product(product.id) is not None:
            raise ApiError('Produto já está na venda', 409)
        SaleService._require_stock(product, form.quantity.data)
        with atomic():
            item = SaleItem(
                product=product,
                quantity=form.quantity.data,
                unit_price=to_decimal(form.unit_price.data if form.unit_price.data is not None else product.price),
                discount=to_decimal(form.discount.data),
            )
            item.calculate_total()
            _check_item_total(item)
            sale.items.append(item)
            sale.recalculate_total()
            _check_sale_total(sale)
        log_action(user, 'sale.item.add', sale.sale_number, product=product.id, quantity=item.quantity)
        return sale

    @staticmethod
    def _item(sale, item_id):
        item = sale.find_item(item_id)
        if item is None:
            raise ApiError('Item não encontrado na venda', 404)
        return item

    @staticmethod
    def update_item(sale_id, item_id, data, user):
        sale = SaleService._editable_sale(sale_id, user)
        item = SaleService._item(sale, item_id)
        form = UpdateSaleItemForm.from_json(data).validate_or_raise()
        changes = form.provided()
        if 'quantity' in changes and changes['quantity'] is not None:
            SaleService._require_stock(item.product, changes['quantity'])
        with atomic():
            if changes.get('quantity') is not None:
                item.quantity = changes['quantity']
            if changes.get('unit_price') is not None:
                item.unit_price = to_decimal(changes['unit_price'])
            if 'discount' in changes:
                item.discount = to_decimal(changes['discount'])
            item.calculate_total()
            _check_item_total(item)
            sale.recalculate_total()
            _check_sale_total(sale)
        log_action(user, 'sale.item.update', sale.sale_number, item=item.id)
        return sale

    @staticmethod
    def remove_item(sale_id, item_id, user):
        sale = SaleService._editable_sale(sale_id, user)
        item = SaleService._item(sale, item_id)
        with atomic():
            sale.items.remove(item)
            sale.recalculate_total()
            _check_sale_total(sale)
        log_action(user, 'sale.item.remove', sale.sale_number, item=item_id)
        return sale

    # status transitions

    @staticmethod
    def submit_sale(sale_id, user):
        sale = SaleService.get_sale(sale_id, user)
        if not sale.items:
            raise ApiError('Venda deve ter pelo menos um item', 400)
        with atomic():
            SaleService._transition(sale, PENDING)
        log_action(user, 'sale.submit', sale.sale_number)
        return sale

    @staticmethod
    def confirm_sale(sale_id, user):
        with atomic():
            # status re-read under a row lock
            sale = SaleService.get_sale(sale_id, user, lock=True)
            if sale.status != PENDING:
                raise ApiError('Apenas vendas pendentes podem ser confirmadas', 409)
            if not sale.items:
                raise ApiError('Venda deve ter pelo menos um item', 400)
            InventoryService.reserve_sale_stock(sale, user)
            SaleService._transition(sale, CONFIRMED)
        log_action(user, 'sale.confirm', sale.sale_number, total=sale.total)
        return sale

    @staticmethod
    def complete_sale(sale_id, user):
        sale = SaleService.get_sale(sale_id, user)
        with atomic():
            SaleService._transition(sale, COMPLETED)
            sale.sale_date = datetime.utcnow()
        log_action(user, 'sale.complete', sale.sale_number)
        return sale

    @staticmethod
    def cancel_sale(sale_id, data, user):
        sale = SaleService.get_sale(sale_id, user)
        if not sale.is_cancellable():
            raise ApiError(f'Venda não pode ser cancelada no status {sale.get_status_display()}', 409)
        form = CancelSaleForm.from_json(data).validate_or_raise()
        reason = form.reason.data or 'Sem motivo informado'
        with atomic():
            if sale.holds_stock():
                InventoryService.release_sale_stock(sale, user, f'Cancelamento da venda {sale.sale_number}')
            SaleService._transition(sale, CANCELLED)
            _append_note(sale, f'Cancelada: {reason}')
        log_action(user, 'sale.cancel', sale.sale_number, reason=reason)
        return sale

    @staticmethod
    def refund_sale(sale_id, data, user):
        sale = SaleService.get_sale(sale_id, user)
        if not sale.is_refundable():
            raise ApiError('Apenas vendas concluídas podem ser reembolsadas', 409)
        form = CancelSaleForm.from_json(data).validate_or_raise()
        reason = form.reason.data or 'Sem motivo informado'
        with atomic():
            InventoryService.release_sale_stock(sale, user, f'Reembolso da venda {sale.sale_number}')
            SaleService._transition(sale, REFUNDED)
            _append_note(sale, f'Reembolsada: {reason}')
        log_action(user, 'sale.refund', sale.sale_number, reason=reason)
        return sale

    # helpers for the POS and receipts

    @staticmethod
    def validate_stock(data):
        form = ValidateStockForm.from_json(data).validate_or_raise()
        return InventoryService.check_stock(
            [(entry.form.product_id.data, entry.form.quantity.data) for entry in form.items.entries])

    @staticmethod
    def build_receipt(sale_id, user):
        sale = SaleService.get_sale(sale_id, user)
        currency = current_app.config.get('CURRENCY', 'BRL')

        def money(value):
            return format_currency(to_decimal(value), currency)

        customer = sale.customer.to_dict()
        return {
            'saleNumber': sale.sale_number,
            'status': sale.status,
            'statusLabel': sale.get_status_display(),
            'date': format_datetime(sale.sale_date, 'short') if sale.sale_date else None,
            'seller': sale.user.name,
            'customer': {
                'name': customer['name'],
                'document': customer['document'],
                'address': customer['fullAddress'],
            },
            'items': [{
                'code': item.product.code,
                'name': item.product.name,
                'quantity': item.quantity,
                'unitPrice': money(item.unit_price),
                'discount': money(item.discount),
                'total': money(item.total),
            } for item in sale.items],
            'subtotal': money(sale.subtotal),
            'discount': money(sale.discount),
            'tax': money(sale.tax),
            'total': money(sale.total),
            'notes': sale.notes,
        }
