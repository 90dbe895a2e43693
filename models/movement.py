from models import db
from datetime import datetime

MOVEMENT_IN = 'IN'
MOVEMENT_OUT = 'OUT'
MOVEMENT_ADJUSTMENT = 'ADJUSTMENT'
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_ADJUSTMENT)

MOVEMENT_LABELS = {
    MOVEMENT_IN: 'Entrada',
    MOVEMENT_OUT: 'Saída',
    MOVEMENT_ADJUSTMENT: 'Ajuste',
}


# Stock movement history entry
class InventoryMovement(db.Model):
    __tablename__ = 'inventory_movements'
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=True)
    type = db.Column(db.String(12), nullable=False)  # IN/OUT/ADJUSTMENT
    # always positive; for ADJUSTMENT the sign lives in `delta`
    quantity = db.Column(db.Integer, nullable=False)
    delta = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    product = db.relationship('Product', backref=db.backref('movements', lazy='dynamic'))
    user = db.relationship('User', backref=db.backref('movements', lazy='dynamic'))
    sale = db.relationship('Sale', backref=db.backref('movements', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'type': self.type,
            'typeLabel': MOVEMENT_LABELS.get(self.type, self.type),
            'quantity': self.quantity,
            'delta': self.delta,
            'reason': self.reason,
            'userId': self.user_id,
            'saleId': self.sale_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'product': {'id': self.product.id, 'name': self.product.name, 'code': self.product.code} if self.product else None,
            'user': {'id': self.user.id, 'name': self.user.name} if self.user else None,
        }
