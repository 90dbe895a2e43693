from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from models import db

ADMIN = 'ADMIN'
MANAGER = 'MANAGER'
SALESPERSON = 'SALESPERSON'
ROLES = (ADMIN, MANAGER, SALESPERSON)

ROLE_LABELS = {
    ADMIN: 'Administrador',
    MANAGER: 'Gerente',
    SALESPERSON: 'Vendedor',
}

PERMISSIONS = {
    ADMIN: {
        'manage_users', 'manage_products', 'manage_categories', 'manage_sales',
        'view_reports', 'manage_suppliers', 'manage_customers', 'manage_inventory',
    },
    MANAGER: {
        'manage_products', 'manage_categories', 'manage_sales', 'view_reports',
        'manage_suppliers', 'manage_customers', 'manage_inventory',
    },
    SALESPERSON: {
        'view_products', 'manage_sales', 'view_customers', 'manage_customers',
    },
}


# System user (login via email)
class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=SALESPERSON)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_admin(self):
        return self.role == ADMIN

    def is_manager(self):
        return self.role == MANAGER

    def is_salesperson(self):
        return self.role == SALESPERSON

    def has_permission(self, permission):
        return permission in PERMISSIONS.get(self.role, set())

    def can_access_sale(self, sale):
        """Salespeople only reach their own sales; admins and managers reach all."""
        if self.is_salesperson():
            return sale.user_id == self.id
        return self.role in (ADMIN, MANAGER)

    def get_role_display(self):
        return ROLE_LABELS.get(self.role, self.role)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'roleLabel': self.get_role_display(),
            'isActive': self.is_active,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<User {self.email}>'
