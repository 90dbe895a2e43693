"""
Point-of-sale shopping cart kept in the user session.
"""
from decimal import Decimal

from models import to_decimal
from forms.sale_forms import PERCENTAGE, FIXED

SESSION_KEY = 'pos_cart'


class CartItem:

    def __init__(self, product_id, name, code, quantity, unit_price, discount=0, available_stock=0):
        self.product_id = product_id
        self.name = name
        self.code = code
        self.quantity = quantity
        self.unit_price = to_decimal(unit_price)
        self.discount = to_decimal(discount)
        self.available_stock = available_stock

    @property
    def gross(self):
        return to_decimal(self.unit_price * self.quantity)

    @property
    def total(self):
        return to_decimal(self.gross - self.discount)

    def to_session(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'code': self.code,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'discount': str(self.discount),
            'available_stock': self.available_stock,
        }

    def to_dict(self):
        return {
            'productId': self.product_id,
            'name': self.name,
            'code': self.code,
            'quantity': self.quantity,
            'unitPrice': float(self.unit_price),
            'discount': float(self.discount),
            'total': float(self.total),
            'availableStock': self.available_stock,
        }


class ShoppingCart:

    def __init__(self, customer_id=None, customer_name=None, items=None,
                 discount_type=PERCENTAGE, discount_value=0, tax=0):
        self.customer_id = customer_id
        self.customer_name = customer_name
        self.items = items or []
        self.discount_type = discount_type
        self.discount_value = to_decimal(discount_value)
        self.tax = to_decimal(tax)

    @classmethod
    def load(cls, store):
        data = store.get(SESSION_KEY) or {}
        return cls(
            customer_id=data.get('customer_id'),
            customer_name=data.get('customer_name'),
            items=[CartItem(**item) for item in data.get('items', [])],
            discount_type=data.get('discount_type', PERCENTAGE),
            discount_value=data.get('discount_value', '0'),
            tax=data.get('tax', '0'),
        )

    def save(self, store):
        store[SESSION_KEY] = {
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'items': [item.to_session() for item in self.items],
            'discount_type': self.discount_type,
            'discount_value': str(self.discount_value),
            'tax': str(self.tax),
        }

    def find(self, product_id):
        return next((item for item in self.items if item.product_id == product_id), None)

    def add_item(self, product, quantity=1, unit_price=None, discount=0):
        """Add a product; the same product merges into one line."""
        item = self.find(product.id)
        if item is not None:
            item.quantity += quantity
            item.available_stock = product.stock
            if discount:
                item.discount = to_decimal(discount)
            return item
        item = CartItem(
            product_id=product.id,
            name=product.name,
            code=product.code,
            quantity=quantity,
            unit_price=product.price if unit_price is None else unit_price,
            discount=discount,
            available_stock=product.stock,
        )
        self.items.append(item)
        return item

    def update_item(self, product_id, quantity=None, discount=None):
        item = self.find(product_id)
        if item is None:
            return None
        if quantity is not None:
            item.quantity = max(1, quantity)
        if discount is not None:
            item.discount = to_decimal(discount)
        return item

    def remove_item(self, product_id):
        item = self.find(product_id)
        if item is not None:
            self.items.remove(item)
        return item

    def clear(self):
        self.customer_id = None
        self.customer_name = None
        self.items = []
        self.discount_type = PERCENTAGE
        self.discount_value = Decimal('0.00')
        self.tax = Decimal('0.00')

    def set_customer(self, customer):
        self.customer_id = customer.id if customer else None
        self.customer_name = customer.name if customer else None

    def set_adjustments(self, discount_type=None, discount_value=None, tax=None):
        if discount_type is not None:
            self.discount_type = discount_type
        if discount_value is not None:
            self.discount_value = to_decimal(discount_value)
        if tax is not None:
            self.tax = to_decimal(tax)

    @property
    def subtotal(self):
        return to_decimal(sum((item.total for item in self.items), Decimal('0')))

    @property
    def discount(self):
        if self.discount_type == FIXED:
            return self.discount_value
        return to_decimal(self.subtotal * self.discount_value / 100)

    @property
    def total(self):
        return to_decimal(self.subtotal - self.discount + self.tax)

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    def validation_errors(self):
        errors = []
        if self.customer_id is None:
            errors.append('Selecione um cliente')
        if not self.items:
            errors.append('Carrinho vazio')
        for item in self.items:
            if item.quantity > item.available_stock:
                errors.append(f'Quantidade de {item.name} excede o estoque disponível ({item.available_stock})')
            if item.discount > item.gross:
                errors.append(f'Desconto do item {item.name} maior que o valor do item')
        if self.items and self.discount > self.subtotal:
            errors.append('Desconto maior que o subtotal')
        return errors

    def is_valid(self):
        return not self.validation_errors()

    def to_sale_payload(self, notes=None):
        return {
            'customer_id': self.customer_id,
            'items': [{
                'product_id': item.product_id,
                'quantity': item.quantity,
                'unit_price': str(item.unit_price),
                'discount': str(item.discount),
            } for item in self.items],
            'discount': str(self.discount),
            'tax': str(self.tax),
            'notes': notes,
        }

    def to_dict(self):
        errors = self.validation_errors()
        return {
            'customer': {'id': self.customer_id, 'name': self.customer_name} if self.customer_id else None,
            'items': [item.to_dict() for item in self.items],
            'itemCount': self.item_count,
            'discountType': self.discount_type,
            'discountValue': float(self.discount_value),
            'totals': {
                'subtotal': float(self.subtotal),
                'discount': float(self.discount),
                'tax': float(self.tax),
                'total': float(self.total),
            },
            'isValid': not errors,
            'errors': errors,
        }
