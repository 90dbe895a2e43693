import logging
from datetime import datetime, time, timedelta

from sqlalchemy import func, or_

from forms.inventory_forms import (StockAdjustmentForm, StockMovementForm, InventoryUpdateForm,
                                   InventoryFiltersForm, MovementFiltersForm)
from models import db, Inventory, InventoryMovement, Product, Sale
from models.inventory import STATUS_OK, STATUS_LOW, STATUS_OUT
from models.movement import MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_ADJUSTMENT, MOVEMENT_TYPES
from services.errors import ApiError
from services.utils import atomic, page_params, paginate, order_by, like, log_action

logger = logging.getLogger(__name__)

DEFAULT_MIN_STOCK = 10

SORT_COLUMNS = {
    'productName': Product.name,
    'quantity': Inventory.quantity,
    'lastUpdate': Inventory.last_update,
}


def _record(product, user, movement_type, delta, reason, sale=None):
    movement = InventoryMovement(
        product=product,
        user=user,
        sale=sale,
        type=movement_type,
        quantity=abs(delta),
        delta=delta,
        reason=reason,
    )
    db.session.add(movement)
    return movement


class InventoryService:

    @staticmethod
    def create_for_product(product, user, quantity=0, min_stock=None, max_stock=None, location=None):
        if min_stock is not None and max_stock is not None and min_stock > max_stock:
            raise ApiError('Estoque mínimo não pode ser maior que o máximo', 400)
        inventory = Inventory(
            product=product,
            quantity=0,
            min_stock=DEFAULT_MIN_STOCK if min_stock is None else min_stock,
            max_stock=max_stock,
            location=location,
        )
        db.session.add(inventory)
        if quantity:
            inventory.add_quantity(quantity)
            _record(product, user, MOVEMENT_IN, quantity, 'Estoque inicial')
        return inventory

    @staticmethod
    def ensure_inventory(product):
        """Products without a stock row count as zero stock; the row is created on demand."""
        if product.inventory is None:
            product.inventory = Inventory(quantity=0, min_stock=DEFAULT_MIN_STOCK)
            db.session.add(product.inventory)
        return product.inventory

    @staticmethod
    def _product(product_id):
        product = db.session.get(Product, product_id)
        if product is None:
            raise ApiError('Produto não encontrado', 404)
        return product

    @staticmethod
    def list(args=None):
        form = InventoryFiltersForm.from_args(args).validate_or_raise()
        query = Inventory.query.join(Product, Inventory.product_id == Product.id)
        if form.search.data:
            term = like(form.search.data)
            query = query.filter(or_(Product.name.ilike(term), Product.code.ilike(term)))
        if form.category_id.data:
            query = query.filter(Product.category_id == form.category_id.data)
        if form.low_stock.data:
            query = query.filter(Inventory.quantity <= Inventory.min_stock)
        elif form.low_stock.data is False:
            query = query.filter(Inventory.quantity > Inventory.min_stock)
        if form.out_of_stock.data:
            query = query.filter(Inventory.quantity == 0)
        elif form.out_of_stock.data is False:
            query = query.filter(Inventory.quantity > 0)
        if form.location.data:
            query = query.filter(Inventory.location.ilike(like(form.location.data)))
        query = order_by(query, SORT_COLUMNS[form.sort_by.data], form.sort_order.data)
        page, limit = page_params(form)
        return paginate(query, page, limit)

    @staticmethod
    def get(inventory_id):
        inventory = db.session.get(Inventory, inventory_id)
        if inventory is None:
            raise ApiError('Estoque não encontrado', 404)
        return inventory

    @staticmethod
    def get_by_product(product_id):
        product = InventoryService._product(product_id)
        if product.inventory is None:
            with atomic():
                InventoryService.ensure_inventory(product)
        return product.inventory

    @staticmethod
    def update(inventory_id, data, user):
        inventory = InventoryService.get(inventory_id)
        form = InventoryUpdateForm.from_json(data).validate_or_raise()
        changes = form.provided()
        min_stock = changes.get('min_stock', inventory.min_stock)
        max_stock = changes.get('max_stock', inventory.max_stock)
        if min_stock is None:
            min_stock = DEFAULT_MIN_STOCK
        if max_stock is not None and min_stock > max_stock:
            raise ApiError('Estoque mínimo não pode ser maior que o máximo', 400)
        with atomic():
            inventory.min_stock = min_stock
            inventory.max_stock = max_stock
            if 'location' in changes:
                inventory.location = changes['location'] or None
            inventory.last_update = datetime.utcnow()
        log_action(user, 'inventory.update', inventory.product_id, **changes)
        return inventory

    @staticmethod
    def adjust_stock(data, user):
        form = StockAdjustmentForm.from_json(data).validate_or_raise()
        product = InventoryService._product(form.product_id.data)
        delta = form.quantity.data
        with atomic():
            inventory = InventoryService.ensure_inventory(product)
            if inventory.quantity + delta < 0:
                raise ApiError(
                    f'Estoque insuficiente para o ajuste: disponível {inventory.quantity}, ajuste {delta}', 400)
            inventory.quantity += delta
            inventory.last_update = datetime.utcnow()
            movement = _record(product, user, MOVEMENT_ADJUSTMENT, delta, form.reason.data.strip())
        log_action(user, 'inventory.adjust', product.id, delta=delta)
        return {'inventory': inventory.to_dict(), 'movement': movement.to_dict()}

    @staticmethod
    def process_movement(data, user):
        form = StockMovementForm.from_json(data).validate_or_raise()
        product = InventoryService._product(form.product_id.data)
        sale = None
        if form.sale_id.data:
            sale = db.session.get(Sale, form.sale_id.data)
            if sale is None:
                raise ApiError('Venda não encontrada', 404)
        quantity = form.quantity.data
        with atomic():
            inventory = InventoryService.ensure_inventory(product)
            if form.type.data == MOVEMENT_OUT:
                if not inventory.subtract_quantity(quantity):
                    raise ApiError(
                        f'Estoque insuficiente: disponível {inventory.quantity}, solicitado {quantity}', 400)
                delta = -quantity
            else:
                inventory.add_quantity(quantity)
                delta = quantity
            movement = _record(product, user, form.type.data, delta, form.reason.data.strip(), sale)
        log_action(user, 'inventory.movement', product.id, type=form.type.data, quantity=quantity)
        return {'inventory': inventory.to_dict(), 'movement': movement.to_dict()}

    @staticmethod
    def get_movements(args=None, product_id=None):
        form = MovementFiltersForm.from_args(args).validate_or_raise()
        query = InventoryMovement.query
        product_id = product_id or form.product_id.data
        if product_id:
            query = query.filter(InventoryMovement.product_id == product_id)
        if form.type.data:
            query = query.filter(InventoryMovement.type == form.type.data)
        if form.user_id.data:
            query = query.filter(InventoryMovement.user_id == form.user_id.data)
        if form.sale_id.data:
            query = query.filter(InventoryMovement.sale_id == form.sale_id.data)
        if form.date_from.data:
            query = query.filter(InventoryMovement.created_at >= datetime.combine(form.date_from.data, time.min))
        if form.date_to.data:
            query = query.filter(InventoryMovement.created_at < datetime.combine(form.date_to.data, time.min) + timedelta(days=1))
        query = query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        page, limit = page_params(form)
        return paginate(query, page, limit)

    @staticmethod
    def get_product_movements(product_id, args=None):
        InventoryService._product(product_id)
        return InventoryService.get_movements(args, product_id=product_id)

    @staticmethod
    def get_statistics():
        totals = db.session.query(
            func.count(Inventory.id),
            func.coalesce(func.sum(Inventory.quantity), 0),
            func.coalesce(func.sum(Inventory.quantity * Product.price), 0),
        ).join(Product, Inventory.product_id == Product.id).one()
        counts = InventoryService.stock_status_counts()
        since = datetime.utcnow() - timedelta(days=30)
        by_type = dict(
            db.session.query(InventoryMovement.type, func.count(InventoryMovement.id))
            .filter(InventoryMovement.created_at >= since)
            .group_by(InventoryMovement.type).all()
        )
        return {
            'totalProducts': totals[0],
            'totalQuantity': int(totals[1]),
            'totalValue': round(float(totals[2]), 2),
            'lowStockCount': counts[STATUS_LOW],
            'outOfStockCount': counts[STATUS_OUT],
            'okCount': counts[STATUS_OK],
            'movementsLast30Days': {t: by_type.get(t, 0) for t in MOVEMENT_TYPES},
        }

    @staticmethod
    def low_stock(limit=None):
        query = (Inventory.query.join(Product, Inventory.product_id == Product.id)
                 .filter(Product.is_active.is_(True), Inventory.quantity <= Inventory.min_stock)
                 .order_by(Inventory.quantity.asc(), Product.name.asc()))
        if limit:
            query = query.limit(limit)
        alerts = []
        for inventory in query.all():
            data = inventory.to_dict()
            data['shortage'] = max(inventory.min_stock - inventory.quantity, 0)
            alerts.append(data)
        return alerts

    @staticmethod
    def out_of_stock():
        query = (Inventory.query.join(Product, Inventory.product_id == Product.id)
                 .filter(Product.is_active.is_(True), Inventory.quantity == 0)
                 .order_by(Product.name.asc()))
        return [inventory.to_dict() for inventory in query.all()]

    @staticmethod
    def check_stock(items):
        """Availability report for a list of (product_id, quantity) pairs."""
        results = []
        for product_id, requested in items:
            product = db.session.get(Product, product_id)
            if product is None:
                results.append({
                    'productId': product_id,
                    'productName': None,
                    'requested': requested,
                    'available': 0,
                    'isValid': False,
                    'shortfall': requested,
                    'message': 'Produto não encontrado',
                })
                continue
            available = product.stock
            is_valid = product.is_active and available >= requested
            if not product.is_active:
                message = 'Produto inativo'
            elif is_valid:
                message = 'Estoque disponível'
            else:
                message = f'Estoque insuficiente: disponível {available}, solicitado {requested}'
            results.append({
                'productId': product.id,
                'productName': product.name,
                'productCode': product.code,
                'requested': requested,
                'available': available,
                'isValid': is_valid,
                'shortfall': max(requested - available, 0),
                'status': product.inventory.get_stock_status() if product.inventory else 'OUT',
                'message': message,
            })
        invalid = [r for r in results if not r['isValid']]
        return {
            'isValid': not invalid,
            'totalItems': len(results),
            'validItems': len(results) - len(invalid),
            'invalidItems': len(invalid),
            'validationResults': results,
            'summary': {
                'totalRequested': sum(r['requested'] for r in results),
                'totalShortfall': sum(r['shortfall'] for r in results),
                'productsWithIssues': [r['productName'] or r['productId'] for r in invalid],
            },
        }

    @staticmethod
    def reserve_sale_stock(sale, user):
        """Take every item of the sale out of stock; caller owns the transaction."""
        failures = []
        rows = []
        for item in sale.items:
            inventory = (Inventory.query.filter_by(product_id=item.product_id)
                         .with_for_update().first())
            available = inventory.quantity if inventory else 0
            if available < item.quantity:
                failures.append({
                    'productId': item.product_id,
                    'productName': item.product.name,
                    'requested': item.quantity,
                    'available': available,
                    'shortfall': item.quantity - available,
                })
            rows.append((item, inventory))
        if failures:
            names = ', '.join(f['productName'] for f in failures)
            raise ApiError(f'Estoque insuficiente para: {names}', 400, details=failures)
        reason = f'Venda {sale.sale_number}'
        for item, inventory in rows:
            inventory.subtract_quantity(item.quantity)
            _record(item.product, user, MOVEMENT_OUT, -item.quantity, reason, sale)
        logger.info('Stock reserved for sale %s (%d items)', sale.id, len(rows))

    @staticmethod
    def release_sale_stock(sale, user, reason):
        """Return every item of the sale to stock; caller owns the transaction."""
        for item in sale.items:
            inventory = (Inventory.query.filter_by(product_id=item.product_id)
                         .with_for_update().first())
            if inventory is None:
                inventory = InventoryService.ensure_inventory(item.product)
            inventory.add_quantity(item.quantity)
            _record(item.product, user, MOVEMENT_IN, item.quantity, reason, sale)
        logger.info('Stock released for sale %s (%s)', sale.id, reason)

    @staticmethod
    def stock_status_counts():
        total = Inventory.query.count()
        low = Inventory.query.filter(Inventory.quantity <= Inventory.min_stock, Inventory.quantity > 0).count()
        out = Inventory.query.filter(Inventory.quantity == 0).count()
        return {STATUS_OUT: out, STATUS_LOW: low, STATUS_OK: total - low - out}
