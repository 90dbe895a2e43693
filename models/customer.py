from models import db
from datetime import datetime
from forms.validators import format_document

RETAIL = 'RETAIL'
WHOLESALE = 'WHOLESALE'
CUSTOMER_TYPES = (RETAIL, WHOLESALE)

CUSTOMER_TYPE_LABELS = {
    RETAIL: 'Varejo',
    WHOLESALE: 'Atacado',
}


class Customer(db.Model):
    __tablename__ = 'customers'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    # digits only; formatted on output
    document = db.Column(db.String(14), nullable=True, unique=True)
    type = db.Column(db.String(12), nullable=False, default=RETAIL)
    address = db.Column(db.String(255))
    neighborhood = db.Column(db.String(100))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    zip_code = db.Column(db.String(10))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def get_full_address(self):
        parts = [self.address, self.neighborhood, self.city, self.state, self.zip_code]
        return ', '.join(p for p in parts if p)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'document': format_document(self.document) if self.document else None,
            'type': self.type,
            'typeLabel': CUSTOMER_TYPE_LABELS.get(self.type, self.type),
            'address': self.address,
            'neighborhood': self.neighborhood,
            'city': self.city,
            'state': self.state,
            'zipCode': self.zip_code,
            'fullAddress': self.get_full_address(),
            'isActive': self.is_active,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Customer {self.name}>'
