import logging

from sqlalchemy import or_

from forms.cart_forms import (CartItemForm, CartItemUpdateForm, CartCustomerForm, CartAdjustmentsForm,
                              CheckoutForm, PosProductSearchForm)
from models import db, Product, Customer, Inventory
from services.cart import ShoppingCart
from services.errors import ApiError
from services.sale_service import SaleService
from services.utils import like, log_action

logger = logging.getLogger(__name__)


class PosService:
    """Cart operations over a session-like mapping, and checkout into a sale."""

    @staticmethod
    def products(args=None):
        form = PosProductSearchForm.from_args(args).validate_or_raise()
        query = (Product.query.join(Inventory, Inventory.product_id == Product.id)
                 .filter(Product.is_active.is_(True), Inventory.quantity > 0))
        if form.q.data:
            term = like(form.q.data)
            query = query.filter(or_(Product.name.ilike(term), Product.code.ilike(term),
                                     Product.barcode.ilike(term)))
        if form.category_id.data:
            query = query.filter(Product.category_id == form.category_id.data)
        products = query.order_by(Product.name).limit(form.limit.data or 20).all()
        return [{
            'id': p.id,
            'name': p.name,
            'code': p.code,
            'barcode': p.barcode,
            'price': float(p.price),
            'quantity': p.stock,
            'category': p.category.name if p.category else None,
        } for p in products]

    @staticmethod
    def get_cart(store):
        return ShoppingCart.load(store)

    @staticmethod
    def add_item(store, data):
        form = CartItemForm.from_json(data).validate_or_raise()
        product = db.session.get(Product, form.product_id.data)
        if product is None:
            raise ApiError('Produto não encontrado', 404)
        if not product.is_active:
            raise ApiError(f'Produto inativo: {product.name}', 400)
        cart = ShoppingCart.load(store)
        existing = cart.find(product.id)
        quantity = form.quantity.data or 1
        wanted = quantity + (existing.quantity if existing else 0)
        if wanted > product.stock:
            raise ApiError(
                f'Estoque insuficiente para {product.name}: disponível {product.stock}, solicitado {wanted}', 400)
        cart.add_item(product, quantity, form.unit_price.data, form.discount.data or 0)
        cart.save(store)
        return cart

    @staticmethod
    def update_item(store, product_id, data):
        form = CartItemUpdateForm.from_json(data).validate_or_raise()
        cart = ShoppingCart.load(store)
        item = cart.find(product_id)
        if item is None:
            raise ApiError('Item não encontrado no carrinho', 404)
        product = db.session.get(Product, product_id)
        if product is not None:
            item.available_stock = product.stock
        cart.update_item(product_id, form.quantity.data, form.discount.data)
        cart.save(store)
        return cart

    @staticmethod
    def remove_item(store, product_id):
        cart = ShoppingCart.load(store)
        if cart.remove_item(product_id) is None:
            raise ApiError('Item não encontrado no carrinho', 404)
        cart.save(store)
        return cart

    @staticmethod
    def clear(store):
        cart = ShoppingCart.load(store)
        cart.clear()
        cart.save(store)
        return cart

    @staticmethod
    def set_customer(store, data):
        form = CartCustomerForm.from_json(data).validate_or_raise()
        customer = None
        if form.customer_id.data:
            customer = db.session.get(Customer, form.customer_id.data)
            if customer is None:
                raise ApiError('Cliente não encontrado', 404)
            if not customer.is_active:
                raise ApiError('Cliente inativo', 400)
        cart = ShoppingCart.load(store)
        cart.set_customer(customer)
        cart.save(store)
        return cart

    @staticmethod
    def set_adjustments(store, data):
        form = CartAdjustmentsForm.from_json(data).validate_or_raise()
        cart = ShoppingCart.load(store)
        cart.set_adjustments(form.discount_type.data, form.discount_value.data, form.tax.data)
        cart.save(store)
        return cart

    @staticmethod
    def checkout(store, data, user):
        """Create a sale from the cart; finalizing runs submit, confirm and complete."""
        form = CheckoutForm.from_json(data).validate_or_raise()
        cart = ShoppingCart.load(store)
        for item in cart.items:
            product = db.session.get(Product, item.product_id)
            item.available_stock = product.stock if product is not None else 0
        errors = cart.validation_errors()
        if errors:
            raise ApiError('Carrinho inválido', 400, details=errors)

        sale = SaleService.create_sale(cart.to_sale_payload(form.notes.data), user)
        if form.finalize.data is not False:
            SaleService.submit_sale(sale.id, user)
            SaleService.confirm_sale(sale.id, user)
            SaleService.complete_sale(sale.id, user)
        cart.clear()
        cart.save(store)
        log_action(user, 'pos.checkout', sale.sale_number, status=sale.status)
        return sale
