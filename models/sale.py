from models import db, Money, to_decimal
from datetime import datetime
from decimal import Decimal

DRAFT = 'DRAFT'
PENDING = 'PENDING'
CONFIRMED = 'CONFIRMED'
COMPLETED = 'COMPLETED'
CANCELLED = 'CANCELLED'
REFUNDED = 'REFUNDED'
SALE_STATUSES = (DRAFT, PENDING, CONFIRMED, COMPLETED, CANCELLED, REFUNDED)

SALE_STATUS_TRANSITIONS = {
    DRAFT: (PENDING, CANCELLED),
    PENDING: (CONFIRMED, CANCELLED),
    CONFIRMED: (COMPLETED, CANCELLED),
    COMPLETED: (REFUNDED,),
    CANCELLED: (),
    REFUNDED: (),
}

EDITABLE_STATUSES = (DRAFT, PENDING)
CANCELLABLE_STATUSES = (DRAFT, PENDING, CONFIRMED)
# statuses in which the sale holds stock taken from inventory
STOCK_HOLDING_STATUSES = (CONFIRMED, COMPLETED)

STATUS_LABELS = {
    DRAFT: 'Rascunho',
    PENDING: 'Pendente',
    CONFIRMED: 'Confirmada',
    COMPLETED: 'Concluída',
    CANCELLED: 'Cancelada',
    REFUNDED: 'Reembolsada',
}


def can_transition(from_status, to_status):
    return to_status in SALE_STATUS_TRANSITIONS.get(from_status, ())


def next_statuses(status):
    return list(SALE_STATUS_TRANSITIONS.get(status, ()))


def calculate_item_total(quantity, unit_price, discount=0):
    return to_decimal(Decimal(quantity) * to_decimal(unit_price) - to_decimal(discount))


def calculate_sale_total(subtotal, discount=0, tax=0):
    return to_decimal(to_decimal(subtotal) - to_decimal(discount) + to_decimal(tax))


def format_sale_number(sale_id):
    return f'VD{sale_id:06d}'


class Sale(db.Model):
    __tablename__ = 'sales'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    total = db.Column(Money, nullable=False, default=Decimal('0.00'))
    discount = db.Column(Money, nullable=False, default=Decimal('0.00'))
    tax = db.Column(Money, nullable=False, default=Decimal('0.00'))
    status = db.Column(db.String(12), nullable=False, default=DRAFT, index=True)
    notes = db.Column(db.String(1000), nullable=True)
    sale_date = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('sales', lazy='dynamic'))
    customer = db.relationship('Customer', backref=db.backref('sales', lazy='dynamic'))
    items = db.relationship('SaleItem', backref='sale', cascade='all, delete-orphan',
                            order_by='SaleItem.id')

    @property
    def sale_number(self):
        return format_sale_number(self.id) if self.id else None

    @property
    def subtotal(self):
        return to_decimal(sum((to_decimal(i.total) for i in self.items), Decimal('0.00')))

    def is_editable(self):
        return self.status in EDITABLE_STATUSES

    def is_cancellable(self):
        return self.status in CANCELLABLE_STATUSES

    def is_refundable(self):
        return self.status == COMPLETED

    def holds_stock(self):
        return self.status in STOCK_HOLDING_STATUSES

    def can_transition_to(self, status):
        return can_transition(self.status, status)

    def find_item(self, item_id):
        return next((i for i in self.items if i.id == item_id), None)

    def find_item_by_product(self, product_id):
        return next((i for i in self.items if i.product_id == product_id), None)

    def recalculate_total(self):
        self.total = calculate_sale_total(self.subtotal, self.discount, self.tax)
        return self.total

    def get_status_display(self):
        return STATUS_LABELS.get(self.status, self.status)

    def to_dict(self, with_items=True):
        data = {
            'id': self.id,
            'saleNumber': self.sale_number,
            'userId': self.user_id,
            'customerId': self.customer_id,
            'subtotal': float(self.subtotal),
            'total': float(self.total or 0),
            'discount': float(self.discount or 0),
            'tax': float(self.tax or 0),
            'status': self.status,
            'statusLabel': self.get_status_display(),
            'nextStatuses': next_statuses(self.status),
            'notes': self.notes,
            'saleDate': self.sale_date.isoformat() if self.sale_date else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
            'user': {'id': self.user.id, 'name': self.user.name, 'role': self.user.role} if self.user else None,
            'customer': {
                'id': self.customer.id,
                'name': self.customer.name,
                'type': self.customer.type,
                'document': self.customer.to_dict()['document'],
            } if self.customer else None,
            'itemCount': len(self.items),
        }
        if with_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f'<Sale {self.id} {self.status}>'


class SaleItem(db.Model):
    __tablename__ = 'sale_items'
    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(Money, nullable=False)
    discount = db.Column(Money, nullable=False, default=Decimal('0.00'))
    total = db.Column(Money, nullable=False)

    product = db.relationship('Product', backref=db.backref('sale_items', lazy='dynamic'))

    __table_args__ = (
        db.UniqueConstraint('sale_id', 'product_id', name='uq_sale_items_sale_product'),
    )

    def calculate_total(self):
        self.total = calculate_item_total(self.quantity, self.unit_price, self.discount or 0)
        return self.total

    def to_dict(self):
        p = self.product
        return {
            'id': self.id,
            'saleId': self.sale_id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'unitPrice': float(self.unit_price),
            'discount': float(self.discount or 0),
            'total': float(self.total),
            'product': {
                'id': p.id,
                'name': p.name,
                'code': p.code,
                'category': {'id': p.category.id, 'name': p.category.name} if p.category else None,
            } if p else None,
        }
