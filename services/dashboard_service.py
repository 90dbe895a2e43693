"""
Dashboard figures over completed sales, stock and the catalog.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func

from forms.report_forms import DashboardForm
from models import db, to_decimal, Sale, SaleItem, Product, Category, Customer, User, Inventory
from models.sale import COMPLETED, PENDING, CONFIRMED
from services.inventory_service import InventoryService
from services.utils import local_date, local_day_start

logger = logging.getLogger(__name__)

PERIOD_DAYS = {
    'week': 7,
    'month': 30,
    'quarter': 90,
    'year': 365,
}


def period_range(period, now=None):
    """(start, end, previous_start) as naive UTC for a named period ending now; days follow local time."""
    now = now or datetime.utcnow()
    if period == 'today':
        today = local_date(now)
        return local_day_start(today), now, local_day_start(today - timedelta(days=1))
    length = timedelta(days=PERIOD_DAYS[period])
    return now - length, now, now - 2 * length


def growth(current, previous):
    if not previous:
        return 100.0 if current else 0.0
    return round(float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100), 2)


def _completed(start, end):
    return Sale.query.filter(Sale.status == COMPLETED, Sale.sale_date >= start, Sale.sale_date < end)


def _revenue(start, end):
    count, revenue = _completed(start, end).with_entities(
        func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0)).one()
    return count, to_decimal(revenue)


class DashboardService:

    @staticmethod
    def _form(args):
        return DashboardForm.from_args(args).validate_or_raise()

    @staticmethod
    def overview(args=None):
        form = DashboardService._form(args)
        start, end, previous_start = period_range(form.period.data)
        count, revenue = _revenue(start, end)
        prev_count, prev_revenue = _revenue(previous_start, start)
        average = to_decimal(revenue / count) if count else Decimal('0.00')
        prev_average = to_decimal(prev_revenue / prev_count) if prev_count else Decimal('0.00')
        new_customers = Customer.query.filter(Customer.created_at >= start).count()
        inventory = InventoryService.stock_status_counts()
        return {
            'period': form.period.data,
            'startDate': start.isoformat(),
            'endDate': end.isoformat(),
            'sales': {
                'count': count,
                'revenue': float(revenue),
                'averageTicket': float(average),
                'growth': {
                    'count': growth(count, prev_count),
                    'revenue': growth(revenue, prev_revenue),
                    'averageTicket': growth(average, prev_average),
                },
                'pending': Sale.query.filter(Sale.status == PENDING).count(),
                'awaitingCompletion': Sale.query.filter(Sale.status == CONFIRMED).count(),
            },
            'products': {
                'total': Product.query.count(),
                'active': Product.query.filter(Product.is_active.is_(True)).count(),
            },
            'customers': {
                'total': Customer.query.count(),
                'active': Customer.query.filter(Customer.is_active.is_(True)).count(),
                'new': new_customers,
            },
            'inventory': {
                'lowStock': inventory['LOW'],
                'outOfStock': inventory['OUT'],
                'ok': inventory['OK'],
            },
        }

    @staticmethod
    def sales_chart(args=None):
        form = DashboardService._form(args)
        days = form.days.data or 30
        today = local_date()
        start_date = today - timedelta(days=days - 1)
        sales = _completed(local_day_start(start_date), local_day_start(today + timedelta(days=1))).all()
        by_day = {}
        for i in range(days):
            day = start_date + timedelta(days=i)
            by_day[day.strftime('%Y-%m-%d')] = {'revenue': Decimal('0.00'), 'count': 0}
        for sale in sales:
            key = local_date(sale.sale_date).strftime('%Y-%m-%d')
            if key in by_day:
                by_day[key]['revenue'] += to_decimal(sale.total)
                by_day[key]['count'] += 1
        return {
            'labels': list(by_day.keys()),
            'revenue': [float(v['revenue']) for v in by_day.values()],
            'count': [v['count'] for v in by_day.values()],
        }

    @staticmethod
    def top_products(args=None):
        form = DashboardService._form(args)
        start, end, _ = period_range(form.period.data)
        rows = (db.session.query(
            Product.id, Product.name, Product.code,
            func.sum(SaleItem.quantity).label('quantity'),
            func.sum(SaleItem.total).label('revenue'),
        ).join(SaleItem, SaleItem.product_id == Product.id)
            .join(Sale, SaleItem.sale_id == Sale.id)
            .filter(Sale.status == COMPLETED, Sale.sale_date >= start, Sale.sale_date < end)
            .group_by(Product.id, Product.name, Product.code)
            .order_by(func.sum(SaleItem.quantity).desc())
            .limit(form.limit.data or 10).all())
        return [{
            'productId': r.id,
            'name': r.name,
            'code': r.code,
            'quantity': int(r.quantity or 0),
            'revenue': float(to_decimal(r.revenue)),
        } for r in rows]

    @staticmethod
    def user_performance(args=None):
        form = DashboardService._form(args)
        start, end, _ = period_range(form.period.data)
        rows = (db.session.query(
            User.id, User.name, User.role,
            func.count(Sale.id).label('sales'),
            func.coalesce(func.sum(Sale.total), 0).label('revenue'),
        ).join(Sale, Sale.user_id == User.id)
            .filter(Sale.status == COMPLETED, Sale.sale_date >= start, Sale.sale_date < end)
            .group_by(User.id, User.name, User.role)
            .order_by(func.sum(Sale.total).desc()).all())
        result = []
        for r in rows:
            revenue = to_decimal(r.revenue)
            result.append({
                'userId': r.id,
                'name': r.name,
                'role': r.role,
                'salesCount': r.sales,
                'revenue': float(revenue),
                'averageTicket': float(to_decimal(revenue / r.sales)) if r.sales else 0.0,
            })
        return result

    @staticmethod
    def category_sales(args=None):
        form = DashboardService._form(args)
        start, end, _ = period_range(form.period.data)
        rows = (db.session.query(
            Category.id, Category.name,
            func.sum(SaleItem.quantity).label('quantity'),
            func.sum(SaleItem.total).label('revenue'),
        ).join(Product, Product.category_id == Category.id)
            .join(SaleItem, SaleItem.product_id == Product.id)
            .join(Sale, SaleItem.sale_id == Sale.id)
            .filter(Sale.status == COMPLETED, Sale.sale_date >= start, Sale.sale_date < end)
            .group_by(Category.id, Category.name)
            .order_by(func.sum(SaleItem.total).desc()).all())
        total = sum((to_decimal(r.revenue) for r in rows), Decimal('0'))
        return [{
            'categoryId': r.id,
            'name': r.name,
            'quantity': int(r.quantity or 0),
            'revenue': float(to_decimal(r.revenue)),
            'percentage': round(float(to_decimal(r.revenue) / total * 100), 2) if total else 0.0,
        } for r in rows]

    @staticmethod
    def low_stock_analysis(args=None):
        form = DashboardService._form(args)
        alerts = InventoryService.low_stock(limit=form.limit.data)
        restock_value = sum(
            (to_decimal(a['product']['price']) * a['shortage'] for a in alerts if a.get('product')),
            Decimal('0'))
        return {
            'items': alerts,
            'totalItems': len(alerts),
            'outOfStock': sum(1 for a in alerts if a['status'] == 'OUT'),
            'restockValue': float(to_decimal(restock_value)),
        }

    @staticmethod
    def alerts():
        alerts = []
        out = Inventory.query.join(Product).filter(Product.is_active.is_(True), Inventory.quantity == 0).count()
        if out:
            alerts.append({'type': 'OUT_OF_STOCK', 'severity': 'high',
                           'message': f'{out} produto(s) sem estoque', 'count': out})
        low = (Inventory.query.join(Product)
               .filter(Product.is_active.is_(True), Inventory.quantity > 0,
                       Inventory.quantity <= Inventory.min_stock).count())
        if low:
            alerts.append({'type': 'LOW_STOCK', 'severity': 'medium',
                           'message': f'{low} produto(s) com estoque baixo', 'count': low})
        stale = Sale.query.filter(Sale.status == PENDING,
                                  Sale.created_at < datetime.utcnow() - timedelta(days=1)).count()
        if stale:
            alerts.append({'type': 'PENDING_SALES', 'severity': 'medium',
                           'message': f'{stale} venda(s) pendente(s) há mais de 24 horas', 'count': stale})
        confirmed = Sale.query.filter(Sale.status == CONFIRMED).count()
        if confirmed:
            alerts.append({'type': 'AWAITING_COMPLETION', 'severity': 'low',
                           'message': f'{confirmed} venda(s) confirmada(s) aguardando conclusão',
                           'count': confirmed})
        return alerts
