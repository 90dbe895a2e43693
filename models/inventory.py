from models import db
from datetime import datetime

STATUS_OUT = 'OUT'
STATUS_LOW = 'LOW'
STATUS_OK = 'OK'


# Stock record, exactly one per product
class Inventory(db.Model):
    __tablename__ = 'inventory'
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, unique=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    # stock limits
    min_stock = db.Column(db.Integer, nullable=False, default=10)
    max_stock = db.Column(db.Integer, nullable=True)
    location = db.Column(db.String(100), nullable=True)

    last_update = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
    )

    def is_low_stock(self):
        return self.quantity <= self.min_stock

    def is_out_of_stock(self):
        return self.quantity == 0

    def is_overstock(self):
        return self.max_stock is not None and self.quantity > self.max_stock

    def get_stock_status(self):
        if self.is_out_of_stock():
            return STATUS_OUT
        elif self.is_low_stock():
            return STATUS_LOW
        else:
            return STATUS_OK

    def get_stock_status_display(self):
        status_map = {
            STATUS_OUT: 'Sem estoque',
            STATUS_LOW: 'Estoque baixo',
            STATUS_OK: 'Estoque normal'
        }
        return status_map.get(self.get_stock_status(), 'Indefinido')

    def add_quantity(self, amount):
        self.quantity += amount
        self.last_update = datetime.utcnow()

    def subtract_quantity(self, amount):
        if self.quantity >= amount:
            self.quantity -= amount
            self.last_update = datetime.utcnow()
            return True
        return False

    def to_dict(self, with_product=True):
        data = {
            'id': self.id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'minStock': self.min_stock,
            'maxStock': self.max_stock,
            'location': self.location,
            'lastUpdate': self.last_update.isoformat() if self.last_update else None,
            'status': self.get_stock_status(),
            'statusLabel': self.get_stock_status_display(),
            'isLowStock': self.is_low_stock(),
        }
        if with_product and self.product is not None:
            p = self.product
            data['product'] = {
                'id': p.id,
                'name': p.name,
                'code': p.code,
                'price': float(p.price),
                'isActive': p.is_active,
                'category': {'id': p.category.id, 'name': p.category.name} if p.category else None,
                'supplier': {'id': p.supplier.id, 'name': p.supplier.name} if p.supplier else None,
            }
        return data
