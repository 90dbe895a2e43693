from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.types import TypeDecorator, Numeric

db = SQLAlchemy()

CENTS = Decimal('0.01')


def to_decimal(value):
    """Coerce None/int/float/str/Decimal to a Decimal rounded half-up to cents."""
    if value is None or value == '':
        return Decimal('0.00')
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f'Valor monetário inválido: {value!r}')


class Money(TypeDecorator):
    """NUMERIC(12, 2) column exposed as Decimal quantized to cents."""
    impl = Numeric(precision=12, scale=2)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_decimal(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return to_decimal(value)

    @property
    def python_type(self):
        return Decimal


from .user import User
from .category import Category
from .supplier import Supplier
from .product import Product
from .inventory import Inventory
from .movement import InventoryMovement
from .customer import Customer
from .sale import Sale, SaleItem
