from models import db, Money


class Product(db.Model):
    __tablename__ = 'products'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(1000))
    price = db.Column(Money, nullable=False)
    code = db.Column(db.String(50), unique=True, nullable=False)
    barcode = db.Column(db.String(64), unique=True, nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False)
    supplier_id = db.Column(db.Integer, db.ForeignKey('suppliers.id'), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    inventory = db.relationship('Inventory', backref='product', uselist=False,
                                cascade='all, delete-orphan')

    @property
    def stock(self):
        return self.inventory.quantity if self.inventory else 0

    def to_dict(self, with_inventory=True):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': float(self.price) if self.price is not None else None,
            'code': self.code,
            'barcode': self.barcode,
            'categoryId': self.category_id,
            'supplierId': self.supplier_id,
            'isActive': self.is_active,
            'category': {'id': self.category.id, 'name': self.category.name} if self.category else None,
            'supplier': {'id': self.supplier.id, 'name': self.supplier.name} if self.supplier else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_inventory:
            inv = self.inventory
            data['inventory'] = {
                'quantity': inv.quantity,
                'minStock': inv.min_stock,
                'maxStock': inv.max_stock,
                'location': inv.location,
                'status': inv.get_stock_status(),
            } if inv else None
        return data

    def __repr__(self):
        return f'<Product {self.code}>'
