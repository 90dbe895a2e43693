"""
Test data factories
"""
import random
import string
from decimal import Decimal

from models import db, User, Category, Supplier, Product, Inventory, Customer
from models.customer import RETAIL
from models.user import SALESPERSON
from services.sale_service import SaleService


def random_string(length=6):
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


class DataFactory:
    """Creates committed rows with sensible defaults."""

    @staticmethod
    def create_user(role=SALESPERSON, email=None, password='senha123', name=None, is_active=True):
        user = User(
            name=name or f'Usuário {random_string()}',
            email=email or f'user_{random_string().lower()}@test.com',
            role=role,
            is_active=is_active,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    @staticmethod
    def create_category(name=None, is_active=True):
        category = Category(name=name or f'Categoria {random_string()}', is_active=is_active)
        db.session.add(category)
        db.session.commit()
        return category

    @staticmethod
    def create_supplier(name=None, cnpj=None, state='PE', is_active=True):
        supplier = Supplier(name=name or f'Fornecedor {random_string()}', cnpj=cnpj, state=state,
                            is_active=is_active)
        db.session.add(supplier)
        db.session.commit()
        return supplier

    @staticmethod
    def create_customer(name=None, document=None, type=RETAIL, is_active=True, **kwargs):
        customer = Customer(name=name or f'Cliente {random_string()}', document=document, type=type,
                            is_active=is_active, **kwargs)
        db.session.add(customer)
        db.session.commit()
        return customer

    @staticmethod
    def create_product(price='10.00', stock=20, min_stock=10, category=None, supplier=None,
                       code=None, name=None, is_active=True, with_inventory=True):
        product = Product(
            name=name or f'Produto {random_string()}',
            code=code or f'P-{random_string()}',
            price=Decimal(price),
            category=category or DataFactory.create_category(),
            supplier=supplier,
            is_active=is_active,
        )
        db.session.add(product)
        if with_inventory:
            db.session.add(Inventory(product=product, quantity=stock, min_stock=min_stock))
        db.session.commit()
        return product

    @staticmethod
    def create_sale(user, customer, lines, discount=None, tax=None):
        """`lines` is a list of (product, quantity) or (product, quantity, item_discount)."""
        items = []
        for line in lines:
            item = {'product_id': line[0].id, 'quantity': line[1]}
            if len(line) > 2:
                item['discount'] = str(line[2])
            items.append(item)
        payload = {'customer_id': customer.id, 'items': items}
        if discount is not None:
            payload['discount'] = str(discount)
        if tax is not None:
            payload['tax'] = str(tax)
        return SaleService.create_sale(payload, user)
