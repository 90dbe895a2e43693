"""
Management reports: sales, products, financial, customers and inventory.

Each generator returns the report as JSON-ready data plus the rows written
when the report is exported to Excel.
"""
import logging
from collections import OrderedDict, namedtuple
from datetime import date, datetime, timedelta
from decimal import Decimal

from flask import current_app
from flask_babel import format_date
from sqlalchemy import func

from forms.report_forms import (SalesReportForm, ProductReportForm, FinancialReportForm,
                                CustomerReportForm, InventoryReportForm)
from models import db, to_decimal, Sale, SaleItem, Product, Customer, Inventory, InventoryMovement
from models.customer import CUSTOMER_TYPE_LABELS
from models.sale import COMPLETED, CONFIRMED, REFUNDED, STATUS_LABELS
from services.customer_service import rfm_analysis, SEGMENT_LABELS
from services.errors import ApiError
from services.export import to_xlsx
from services.utils import local_date, local_day_start, log_action

logger = logging.getLogger(__name__)

SALES = 'sales'
PRODUCTS = 'products'
FINANCIAL = 'financial'
CUSTOMERS = 'customers'
INVENTORY = 'inventory'
REPORT_TYPES = (SALES, PRODUCTS, FINANCIAL, CUSTOMERS, INVENTORY)

REPORT_TITLES = {
    SALES: 'Relatório de Vendas',
    PRODUCTS: 'Relatório de Produtos',
    FINANCIAL: 'Relatório Financeiro',
    CUSTOMERS: 'Relatório de Clientes',
    INVENTORY: 'Relatório de Estoque',
}

REPORT_DESCRIPTIONS = {
    SALES: 'Análise detalhada de vendas, performance e tendências',
    PRODUCTS: 'Visão geral de produtos, estoque e movimentação',
    FINANCIAL: 'Indicadores financeiros, faturamento e fluxo de caixa',
    CUSTOMERS: 'Análise de clientes, segmentação e comportamento',
    INVENTORY: 'Posição de estoque, valorização e necessidades de reposição',
}

EXPORT_COLUMNS = {
    SALES: {'number': 'Venda', 'date': 'Data', 'customer': 'Cliente', 'vendor': 'Vendedor',
            'status': 'Status', 'discount': 'Desconto', 'tax': 'Impostos', 'total': 'Total'},
    PRODUCTS: {'code': 'Código', 'name': 'Produto', 'category': 'Categoria', 'currentStock': 'Estoque',
               'minStock': 'Mínimo', 'stockStatus': 'Situação', 'price': 'Preço',
               'inventoryValue': 'Valor em estoque', 'unitsSold': 'Vendidos'},
    FINANCIAL: {'date': 'Data', 'inflow': 'Entradas', 'outflow': 'Saídas', 'balance': 'Saldo'},
    CUSTOMERS: {'name': 'Cliente', 'type': 'Tipo', 'totalPurchases': 'Compras', 'totalSpent': 'Total gasto',
                'averageTicket': 'Ticket médio', 'lastPurchase': 'Última compra'},
    INVENTORY: {'productCode': 'Código', 'productName': 'Produto', 'category': 'Categoria',
                'quantity': 'Quantidade', 'minStock': 'Mínimo', 'maxStock': 'Máximo', 'value': 'Valor',
                'status': 'Situação', 'location': 'Local'},
}

# cumulative revenue share closing classes A and B
ABC_LIMITS = (Decimal('80'), Decimal('95'))
RECEIVABLE_OVERDUE_DAYS = 1
MOVEMENTS_LIMIT = 100

ReportRange = namedtuple('ReportRange', 'start end first_day last_day')


def _period_days(period, today):
    """(first_day, day_after_last) of a named period."""
    tomorrow = today + timedelta(days=1)
    month_start = today.replace(day=1)
    quarter_start = date(today.year, 3 * ((today.month - 1) // 3) + 1, 1)
    if period == 'today':
        return today, tomorrow
    if period == 'yesterday':
        return today - timedelta(days=1), today
    if period == 'last7days':
        return today - timedelta(days=7), tomorrow
    if period == 'last30days':
        return today - timedelta(days=30), tomorrow
    if period == 'thisMonth':
        return month_start, tomorrow
    if period == 'lastMonth':
        return (month_start - timedelta(days=1)).replace(day=1), month_start
    if period == 'thisQuarter':
        return quarter_start, tomorrow
    if period == 'lastQuarter':
        previous = quarter_start - timedelta(days=1)
        return date(previous.year, 3 * ((previous.month - 1) // 3) + 1, 1), quarter_start
    if period == 'thisYear':
        return date(today.year, 1, 1), tomorrow
    if period == 'lastYear':
        return date(today.year - 1, 1, 1), date(today.year, 1, 1)
    raise ApiError('Período inválido', 400)


def report_range(form, default_days=30, now=None):
    """Local calendar days of the report and their naive UTC bounds (end exclusive)."""
    today = local_date(now)
    period = form.period.data
    if period and period != 'custom':
        first, after = _period_days(period, today)
    elif form.start_date.data or form.end_date.data:
        last = form.end_date.data or today
        first = form.start_date.data or last - timedelta(days=default_days)
        after = last + timedelta(days=1)
    else:
        first, after = today - timedelta(days=default_days), today + timedelta(days=1)
    return ReportRange(local_day_start(first), local_day_start(after), first, after - timedelta(days=1))


def range_label(rng):
    return f"{format_date(rng.first_day, 'dd/MM/yyyy')} - {format_date(rng.last_day, 'dd/MM/yyyy')}"


def stock_level(inventory):
    """Five-level stock situation used by the reports."""
    if inventory is None or inventory.quantity == 0:
        return 'out'
    if inventory.quantity <= inventory.min_stock / 2:
        return 'critical'
    if inventory.quantity <= inventory.min_stock:
        return 'low'
    if inventory.max_stock is not None and inventory.quantity > inventory.max_stock:
        return 'overstock'
    return 'normal'


def abc_classification(revenues):
    """Split (key, revenue) pairs into classes A, B and C by cumulative revenue share."""
    ranked = sorted(((k, to_decimal(v)) for k, v in revenues if v), key=lambda pair: pair[1], reverse=True)
    total = sum((v for _, v in ranked), Decimal('0'))
    classes = {'A': [], 'B': [], 'C': []}
    cumulative = Decimal('0')
    for key, revenue in ranked:
        if cumulative < ABC_LIMITS[0]:
            label = 'A'
        elif cumulative < ABC_LIMITS[1]:
            label = 'B'
        else:
            label = 'C'
        share = revenue / total * 100
        cumulative += share
        classes[label].append((key, revenue, round(float(share), 2), round(float(cumulative), 2)))
    return classes


def _money(value):
    return float(to_decimal(value))


def _percentage(part, whole):
    return round(float(Decimal(part) / Decimal(whole) * 100), 2) if whole else 0.0


def _serialize_filters(form):
    filters = {}
    for name, value in form.provided().items():
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = float(value)
        filters[name] = value
    return filters


def _daily(rng, values):
    """Zero-filled {date: value} from the first report day up to today or the last day."""
    days = OrderedDict()
    day = rng.first_day
    last = min(rng.last_day, local_date())
    while day <= last:
        days[day.isoformat()] = values.get(day, Decimal('0.00'))
        day += timedelta(days=1)
    return days


class ReportService:

    @staticmethod
    def available_reports():
        return [{
            'type': report_type,
            'title': REPORT_TITLES[report_type],
            'description': REPORT_DESCRIPTIONS[report_type],
        } for report_type in REPORT_TYPES]

    @staticmethod
    def _build(report_type, data, user):
        generators = {
            SALES: ReportService.sales_report,
            PRODUCTS: ReportService.product_report,
            FINANCIAL: ReportService.financial_report,
            CUSTOMERS: ReportService.customer_report,
            INVENTORY: ReportService.inventory_report,
        }
        if report_type not in generators:
            raise ApiError('Tipo de relatório inválido', 400)
        return generators[report_type](data, user)

    @staticmethod
    def generate(report_type, data, user):
        report, _ = ReportService._build(report_type, data, user)
        log_action(user, 'report.generate', report_type, rows=report['metadata']['rowCount'])
        return report

    @staticmethod
    def export_xlsx(report_type, data, user):
        report, rows = ReportService._build(report_type, data, user)
        log_action(user, 'report.export', report_type, rows=len(rows))
        return to_xlsx(rows, EXPORT_COLUMNS[report_type], sheet_name=REPORT_TITLES[report_type][:31])

    @staticmethod
    def _metadata(report_type, form, user, rng=None, row_count=None):
        metadata = {
            'id': f"{report_type}_{datetime.utcnow().strftime('%Y%m%d%H%M%S')}",
            'type': report_type,
            'title': REPORT_TITLES[report_type],
            'description': REPORT_DESCRIPTIONS[report_type],
            'generatedAt': datetime.utcnow().isoformat(),
            'generatedBy': user.email if user is not None else None,
            'filters': _serialize_filters(form),
            'rowCount': row_count,
        }
        if rng is not None:
            metadata['startDate'] = rng.first_day.isoformat()
            metadata['endDate'] = rng.last_day.isoformat()
            metadata['period'] = range_label(rng)
        return metadata

    # sales

    @staticmethod
    def sales_report(data, user):
        form = SalesReportForm.from_json(data).validate_or_raise()
        rng = report_range(form)
        query = Sale.query.filter(Sale.sale_date >= rng.start, Sale.sale_date < rng.end,
                                  Sale.status == (form.status.data or COMPLETED))
        if form.vendor_id.data:
            query = query.filter(Sale.user_id == form.vendor_id.data)
        if form.customer_id.data:
            query = query.filter(Sale.customer_id == form.customer_id.data)
        if form.category_id.data:
            query = query.filter(Sale.items.any(SaleItem.product.has(Product.category_id == form.category_id.data)))
        if form.min_value.data is not None:
            query = query.filter(Sale.total >= form.min_value.data)
        if form.max_value.data is not None:
            query = query.filter(Sale.total <= form.max_value.data)
        sales = query.order_by(Sale.sale_date.asc(), Sale.id.asc()).all()

        revenue = sum((to_decimal(s.total) for s in sales), Decimal('0'))
        summary = {
            'totalSales': len(sales),
            'totalRevenue': _money(revenue),
            'averageTicket': _money(revenue / len(sales)) if sales else 0.0,
            'totalCustomers': len({s.customer_id for s in sales}),
            'totalProducts': len({i.product_id for s in sales for i in s.items}),
            'period': range_label(rng),
        }

        per_day_revenue, per_day_count = {}, {}
        for sale in sales:
            day = local_date(sale.sale_date)
            per_day_revenue[day] = per_day_revenue.get(day, Decimal('0')) + to_decimal(sale.total)
            per_day_count[day] = per_day_count.get(day, 0) + 1
        by_period = []
        for day, day_revenue in _daily(rng, per_day_revenue).items():
            count = per_day_count.get(date.fromisoformat(day), 0)
            by_period.append({
                'date': day,
                'sales': count,
                'revenue': _money(day_revenue),
                'averageTicket': _money(day_revenue / count) if count else 0.0,
            })

        result = {'summary': summary, 'byPeriod': by_period}
        groups = form.groups()
        if 'vendor' in groups:
            result['byVendor'] = ReportService._sales_by_vendor(sales)
        if 'category' in groups:
            result['byCategory'] = ReportService._sales_by_category(sales)
        if form.include_details.data:
            limit = form.limit.data or 10
            result['topProducts'] = ReportService._top_products(sales, limit)
            result['topCustomers'] = ReportService._top_customers(sales, limit)

        rows = [{
            'number': s.sale_number,
            'date': local_date(s.sale_date).isoformat(),
            'customer': s.customer.name,
            'vendor': s.user.name,
            'status': STATUS_LABELS[s.status],
            'discount': _money(s.discount),
            'tax': _money(s.tax),
            'total': _money(s.total),
        } for s in sales]
        report = {
            'metadata': ReportService._metadata(SALES, form, user, rng, len(sales)),
            'data': result,
        }
        return report, rows

    @staticmethod
    def _sales_by_vendor(sales):
        vendors = {}
        for sale in sales:
            entry = vendors.setdefault(sale.user_id, {'vendorId': sale.user_id, 'vendorName': sale.user.name,
                                                      'totalSales': 0, 'revenue': Decimal('0')})
            entry['totalSales'] += 1
            entry['revenue'] += to_decimal(sale.total)
        result = []
        for entry in sorted(vendors.values(), key=lambda v: v['revenue'], reverse=True):
            revenue = entry.pop('revenue')
            entry['totalRevenue'] = _money(revenue)
            entry['averageTicket'] = _money(revenue / entry['totalSales'])
            result.append(entry)
        return result

    @staticmethod
    def _sales_by_category(sales):
        categories = {}
        for sale in sales:
            for item in sale.items:
                category = item.product.category
                entry = categories.setdefault(category.id, {'categoryId': category.id, 'categoryName': category.name,
                                                            'quantitySold': 0, 'revenue': Decimal('0')})
                entry['quantitySold'] += item.quantity
                entry['revenue'] += to_decimal(item.total)
        total = sum((c['revenue'] for c in categories.values()), Decimal('0'))
        result = []
        for entry in sorted(categories.values(), key=lambda c: c['revenue'], reverse=True):
            entry['percentage'] = _percentage(entry['revenue'], total)
            entry['revenue'] = _money(entry['revenue'])
            result.append(entry)
        return result

    @staticmethod
    def _top_products(sales, limit):
        products = {}
        for sale in sales:
            for item in sale.items:
                entry = products.setdefault(item.product_id, {
                    'productId': item.product_id,
                    'productName': item.product.name,
                    'productCode': item.product.code,
                    'quantitySold': 0,
                    'revenue': Decimal('0'),
                })
                entry['quantitySold'] += item.quantity
                entry['revenue'] += to_decimal(item.total)
        ranked = sorted(products.values(), key=lambda p: p['revenue'], reverse=True)[:limit]
        for entry in ranked:
            entry['revenue'] = _money(entry['revenue'])
        return ranked

    @staticmethod
    def _top_customers(sales, limit):
        customers = {}
        for sale in sales:
            entry = customers.setdefault(sale.customer_id, {
                'customerId': sale.customer_id,
                'customerName': sale.customer.name,
                'customerType': sale.customer.type,
                'purchases': 0,
                'totalSpent': Decimal('0'),
            })
            entry['purchases'] += 1
            entry['totalSpent'] += to_decimal(sale.total)
        ranked = sorted(customers.values(), key=lambda c: c['totalSpent'], reverse=True)[:limit]
        for entry in ranked:
            entry['totalSpent'] = _money(entry['totalSpent'])
        return ranked

    @staticmethod
    def _product_sales(rng):
        """{product_id: (quantity, revenue)} over completed sales in the range."""
        rows = (db.session.query(SaleItem.product_id, func.sum(SaleItem.quantity), func.sum(SaleItem.total))
                .join(Sale, SaleItem.sale_id == Sale.id)
                .filter(Sale.status == COMPLETED, Sale.sale_date >= rng.start, Sale.sale_date < rng.end)
                .group_by(SaleItem.product_id).all())
        return {product_id: (int(quantity or 0), to_decimal(revenue or 0)) for product_id, quantity, revenue in rows}

    @staticmethod
    def _abc(rng):
        sold = ReportService._product_sales(rng)
        products = {p.id: p for p in Product.query.filter(Product.id.in_(list(sold))).all()} if sold else {}
        classes = abc_classification((product_id, revenue) for product_id, (_, revenue) in sold.items())
        return {
            f'class{label}': [{
                'productId': product_id,
                'productName': products[product_id].name,
                'productCode': products[product_id].code,
                'revenue': _money(revenue),
                'share': share,
                'cumulativeShare': cumulative,
            } for product_id, revenue, share, cumulative in entries]
            for label, entries in classes.items()
        }

    # products

    @staticmethod
    def product_report(data, user):
        form = ProductReportForm.from_json(data).validate_or_raise()
        rng = report_range(form)
        query = Product.query
        if form.category_id.data:
            query = query.filter(Product.category_id == form.category_id.data)
        if form.supplier_id.data:
            query = query.filter(Product.supplier_id == form.supplier_id.data)
        if not form.include_inactive.data:
            query = query.filter(Product.is_active.is_(True))
        products = query.order_by(Product.name.asc()).all()

        wanted = form.stock_status.data or 'all'
        if wanted != 'all':
            accepted = {'low': ('low', 'critical'), 'out': ('out',), 'normal': ('normal',)}[wanted]
            products = [p for p in products if stock_level(p.inventory) in accepted]

        sold = ReportService._product_sales(rng)
        rows = []
        total_value = Decimal('0')
        for product in products:
            quantity = product.inventory.quantity if product.inventory else 0
            value = to_decimal(product.price * quantity)
            total_value += value
            units, revenue = sold.get(product.id, (0, Decimal('0')))
            rows.append({
                'id': product.id,
                'code': product.code,
                'name': product.name,
                'category': product.category.name if product.category else None,
                'supplier': product.supplier.name if product.supplier else None,
                'currentStock': quantity,
                'minStock': product.inventory.min_stock if product.inventory else 0,
                'stockStatus': stock_level(product.inventory),
                'price': _money(product.price),
                'inventoryValue': _money(value),
                'unitsSold': units,
                'revenue': _money(revenue),
                'isActive': product.is_active,
            })

        summary = {
            'totalProducts': len(rows),
            'activeProducts': sum(1 for r in rows if r['isActive']),
            'lowStockProducts': sum(1 for r in rows if r['stockStatus'] in ('low', 'critical')),
            'outOfStockProducts': sum(1 for r in rows if r['stockStatus'] == 'out'),
            'totalInventoryValue': _money(total_value),
        }
        result = {'summary': summary, 'products': rows}
        if form.include_details.data:
            result['abcAnalysis'] = ReportService._abc(rng)
        report = {
            'metadata': ReportService._metadata(PRODUCTS, form, user, rng, len(rows)),
            'data': result,
        }
        return report, rows

    # financial

    @staticmethod
    def financial_report(data, user):
        form = FinancialReportForm.from_json(data).validate_or_raise()
        rng = report_range(form)
        sales = (Sale.query.filter(Sale.status == COMPLETED, Sale.sale_date >= rng.start, Sale.sale_date < rng.end)
                 .order_by(Sale.sale_date.asc()).all())
        refunds = (Sale.query.filter(Sale.status == REFUNDED, Sale.updated_at >= rng.start, Sale.updated_at < rng.end)
                   .all())

        gross = sum((s.subtotal for s in sales), Decimal('0'))
        discounts = sum((to_decimal(s.discount) for s in sales), Decimal('0'))
        taxes = sum((to_decimal(s.tax) for s in sales), Decimal('0'))
        billed = sum((to_decimal(s.total) for s in sales), Decimal('0'))
        refunded = sum((to_decimal(s.total) for s in refunds), Decimal('0'))
        net = billed - taxes if form.include_taxes.data else billed
        summary = {
            'salesCount': len(sales),
            'grossRevenue': _money(gross),
            'totalDiscounts': _money(discounts),
            'totalTaxes': _money(taxes),
            'billedRevenue': _money(billed),
            'refunds': _money(refunded),
            'netRevenue': _money(net - refunded),
            'averageTicket': _money(billed / len(sales)) if sales else 0.0,
            'discountRate': _percentage(discounts, gross),
        }

        inflow, outflow = {}, {}
        for sale in sales:
            day = local_date(sale.sale_date)
            inflow[day] = inflow.get(day, Decimal('0')) + to_decimal(sale.total)
        for sale in refunds:
            day = local_date(sale.updated_at)
            outflow[day] = outflow.get(day, Decimal('0')) + to_decimal(sale.total)
        cash_flow = []
        balance = Decimal('0')
        for day in sorted(set(inflow) | set(outflow)):
            day_in = inflow.get(day, Decimal('0'))
            day_out = outflow.get(day, Decimal('0'))
            balance += day_in - day_out
            cash_flow.append({'date': day.isoformat(), 'inflow': _money(day_in), 'outflow': _money(day_out),
                              'balance': _money(balance)})

        result = {
            'summary': summary,
            'cashFlow': cash_flow,
            'receivables': ReportService._receivables(),
        }
        if form.include_details.data:
            result['abcAnalysis'] = ReportService._abc(rng)
        report = {
            'metadata': ReportService._metadata(FINANCIAL, form, user, rng, len(cash_flow)),
            'data': result,
        }
        return report, cash_flow

    @staticmethod
    def _receivables():
        """Confirmed sales: stock already reserved, payment still to be completed."""
        confirmed = Sale.query.filter(Sale.status == CONFIRMED).all()
        limit = datetime.utcnow() - timedelta(days=RECEIVABLE_OVERDUE_DAYS)
        overdue = [s for s in confirmed if s.updated_at and s.updated_at < limit]
        return {
            'count': len(confirmed),
            'total': _money(sum((to_decimal(s.total) for s in confirmed), Decimal('0'))),
            'overdueCount': len(overdue),
            'overdue': _money(sum((to_decimal(s.total) for s in overdue), Decimal('0'))),
        }

    # customers

    @staticmethod
    def customer_report(data, user):
        form = CustomerReportForm.from_json(data).validate_or_raise()
        rng = report_range(form, default_days=365)
        query = Customer.query
        if form.customer_type.data:
            query = query.filter(Customer.type == form.customer_type.data)
        if form.only_active.data is not False:
            query = query.filter(Customer.is_active.is_(True))
        if form.city.data:
            query = query.filter(func.lower(Customer.city) == form.city.data.strip().lower())
        if form.state.data:
            query = query.filter(Customer.state == form.state.data.upper())
        customers = query.order_by(Customer.name.asc()).all()

        sales_by_customer = {}
        if customers:
            sales = (Sale.query.filter(Sale.status == COMPLETED, Sale.sale_date >= rng.start,
                                       Sale.sale_date < rng.end,
                                       Sale.customer_id.in_([c.id for c in customers]))
                     .order_by(Sale.sale_date.asc()).all())
            for sale in sales:
                sales_by_customer.setdefault(sale.customer_id, []).append(sale)
        if form.min_purchases.data:
            customers = [c for c in customers if len(sales_by_customer.get(c.id, [])) >= form.min_purchases.data]

        now = datetime.utcnow()
        ranking = []
        for customer in customers:
            purchases = sales_by_customer.get(customer.id, [])
            spent = sum((to_decimal(s.total) for s in purchases), Decimal('0'))
            last = purchases[-1].sale_date if purchases else None
            ranking.append({
                'customerId': customer.id,
                'name': customer.name,
                'type': customer.type,
                'state': customer.state,
                'totalPurchases': len(purchases),
                'totalSpent': spent,
                'averageTicket': _money(spent / len(purchases)) if purchases else 0.0,
                'lastPurchase': last.isoformat() if last else None,
                'daysInactive': (now - (last or customer.created_at or now)).days,
            })
        ranking.sort(key=lambda r: r['totalSpent'], reverse=True)

        revenue = sum((r['totalSpent'] for r in ranking), Decimal('0'))
        active = sum(1 for r in ranking if r['totalPurchases'])
        summary = {
            'totalCustomers': len(customers),
            'newCustomers': sum(1 for c in customers if c.created_at and c.created_at >= rng.start),
            'activeCustomers': active,
            'averagePurchaseValue': _money(revenue / active) if active else 0.0,
            'totalRevenue': _money(revenue),
        }

        by_type, by_state = {}, {}
        for entry in ranking:
            kind = by_type.setdefault(entry['type'], {'type': entry['type'],
                                                      'label': CUSTOMER_TYPE_LABELS.get(entry['type'], entry['type']),
                                                      'count': 0, 'revenue': Decimal('0')})
            kind['count'] += 1
            kind['revenue'] += entry['totalSpent']
            state = entry['state'] or 'N/I'
            place = by_state.setdefault(state, {'state': state, 'customers': 0, 'revenue': Decimal('0')})
            place['customers'] += 1
            place['revenue'] += entry['totalSpent']
        segmentation = {
            'byType': [dict(t, percentage=_percentage(t['revenue'], revenue), revenue=_money(t['revenue']))
                       for t in by_type.values()],
            'byLocation': [dict(s, revenue=_money(s['revenue']))
                           for s in sorted(by_state.values(), key=lambda s: s['revenue'], reverse=True)],
        }

        for entry in ranking:
            entry['totalSpent'] = _money(entry['totalSpent'])
        result = {
            'summary': summary,
            'segmentation': segmentation,
            'ranking': ranking[:form.limit.data or 10],
        }
        if form.include_details.data:
            result['rfmAnalysis'] = ReportService._rfm_groups(customers, sales_by_customer, now)

        rows = [dict(r, type=CUSTOMER_TYPE_LABELS.get(r['type'], r['type'])) for r in ranking]
        report = {
            'metadata': ReportService._metadata(CUSTOMERS, form, user, rng, len(customers)),
            'data': result,
        }
        return report, rows

    @staticmethod
    def _rfm_groups(customers, sales_by_customer, now):
        inactive_days = current_app.config.get('INACTIVE_CUSTOMER_DAYS', 90)
        groups = {segment: [] for segment in SEGMENT_LABELS}
        for customer in customers:
            analysis = rfm_analysis(sales_by_customer.get(customer.id, []), now=now, inactive_days=inactive_days)
            groups[analysis['segment']].append({
                'customerId': customer.id,
                'name': customer.name,
                'score': analysis['score'],
                'scores': analysis['scores'],
            })
        return {
            segment: {'label': SEGMENT_LABELS[segment], 'count': len(members),
                      'customers': sorted(members, key=lambda m: m['score'], reverse=True)}
            for segment, members in groups.items()
        }

    # inventory

    @staticmethod
    def inventory_report(data, user):
        form = InventoryReportForm.from_json(data).validate_or_raise()
        query = Inventory.query.join(Product, Inventory.product_id == Product.id)
        if form.category_id.data:
            query = query.filter(Product.category_id == form.category_id.data)
        if form.location.data:
            query = query.filter(Inventory.location == form.location.data)
        inventories = query.order_by(Product.name.asc()).all()

        rows = []
        reorder = []
        by_category, by_location = {}, {}
        total_value = Decimal('0')
        for inventory in inventories:
            product = inventory.product
            value = to_decimal(product.price * inventory.quantity)
            total_value += value
            category_name = product.category.name if product.category else 'Sem categoria'
            rows.append({
                'productId': product.id,
                'productCode': product.code,
                'productName': product.name,
                'category': category_name,
                'quantity': inventory.quantity,
                'minStock': inventory.min_stock,
                'maxStock': inventory.max_stock,
                'value': _money(value),
                'status': stock_level(inventory),
                'lastMovement': inventory.last_update.isoformat() if inventory.last_update else None,
                'location': inventory.location,
            })
            if inventory.quantity <= inventory.min_stock:
                suggested = inventory.min_stock * 2 - inventory.quantity
                if inventory.max_stock is not None:
                    suggested = min(suggested, inventory.max_stock - inventory.quantity)
                reorder.append({
                    'productId': product.id,
                    'productName': product.name,
                    'currentStock': inventory.quantity,
                    'minStock': inventory.min_stock,
                    'suggestedOrder': max(suggested, 0),
                    'supplier': product.supplier.name if product.supplier else None,
                })
            cat = by_category.setdefault(category_name, {'category': category_name, 'items': 0, 'quantity': 0,
                                                         'value': Decimal('0')})
            cat['items'] += 1
            cat['quantity'] += inventory.quantity
            cat['value'] += value
            location = inventory.location or 'Não especificado'
            loc = by_location.setdefault(location, {'location': location, 'items': 0, 'value': Decimal('0')})
            loc['items'] += 1
            loc['value'] += value

        summary = {
            'totalItems': len(rows),
            'totalQuantity': sum(r['quantity'] for r in rows),
            'totalValue': _money(total_value),
            'itemsLowStock': sum(1 for i in inventories if 0 < i.quantity <= i.min_stock),
            'itemsOutOfStock': sum(1 for i in inventories if i.quantity == 0),
            'itemsOverstock': sum(1 for i in inventories if i.is_overstock()),
        }
        valuation = {
            'byCategory': [dict(c, percentage=_percentage(c['value'], total_value), value=_money(c['value']))
                           for c in sorted(by_category.values(), key=lambda c: c['value'], reverse=True)],
        }
        if not form.location.data:
            valuation['byLocation'] = [dict(loc, value=_money(loc['value'])) for loc in by_location.values()]

        result = {'summary': summary, 'inventory': rows, 'reorderList': reorder, 'valuation': valuation}
        if form.include_movements.data:
            movements = InventoryMovement.query.join(Product, InventoryMovement.product_id == Product.id)
            if form.category_id.data:
                movements = movements.filter(Product.category_id == form.category_id.data)
            movements = (movements.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
                         .limit(MOVEMENTS_LIMIT).all())
            result['movements'] = [m.to_dict() for m in movements]
        report = {
            'metadata': ReportService._metadata(INVENTORY, form, user, row_count=len(rows)),
            'data': result,
        }
        return report, rows
