from models import db


class Category(db.Model):
    __tablename__ = 'categories'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.String(255), nullable=True)
    cnae = db.Column(db.String(20), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    products = db.relationship('Product', backref='category', lazy='dynamic')

    def to_dict(self, with_counts=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'cnae': self.cnae,
            'isActive': self.is_active,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_counts:
            data['productCount'] = self.products.count()
            data['activeProductCount'] = self.products.filter_by(is_active=True).count()
        return data

    def __repr__(self):
        return f'<Category {self.name}>'
