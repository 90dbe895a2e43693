from flask import Blueprint, jsonify, request, session
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.pos_service import PosService

pos_bp = Blueprint('pos', __name__, url_prefix='/pos')


def _cart(cart):
    return jsonify(cart.to_dict())


@pos_bp.route('/api/products')
@login_required
@permission_required('manage_sales')
def pos_products():
    return jsonify(PosService.products(request.args))


@pos_bp.route('/api/cart')
@login_required
@permission_required('manage_sales')
def get_cart():
    return _cart(PosService.get_cart(session))


@pos_bp.route('/api/cart', methods=['DELETE'])
@login_required
@permission_required('manage_sales')
def clear_cart():
    return _cart(PosService.clear(session))


@pos_bp.route('/api/cart/items', methods=['POST'])
@login_required
@permission_required('manage_sales')
def add_cart_item():
    return _cart(PosService.add_item(session, request.get_json(silent=True)))


@pos_bp.route('/api/cart/items/<int:product_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_sales')
def update_cart_item(product_id):
    return _cart(PosService.update_item(session, product_id, request.get_json(silent=True)))


@pos_bp.route('/api/cart/items/<int:product_id>', methods=['DELETE'])
@login_required
@permission_required('manage_sales')
def remove_cart_item(product_id):
    return _cart(PosService.remove_item(session, product_id))


@pos_bp.route('/api/cart/customer', methods=['PUT'])
@login_required
@permission_required('manage_sales')
def set_cart_customer():
    return _cart(PosService.set_customer(session, request.get_json(silent=True)))


@pos_bp.route('/api/cart/adjustments', methods=['PUT'])
@login_required
@permission_required('manage_sales')
def set_cart_adjustments():
    return _cart(PosService.set_adjustments(session, request.get_json(silent=True)))


@pos_bp.route('/api/checkout', methods=['POST'])
@login_required
@permission_required('manage_sales')
def checkout():
    sale = PosService.checkout(session, request.get_json(silent=True), actor())
    return jsonify({'message': 'Venda registrada com sucesso', 'sale': sale.to_dict()}), 201
