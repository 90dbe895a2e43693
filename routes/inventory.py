from flask import Blueprint, jsonify, request
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.inventory_service import InventoryService
from services.sale_service import SaleService

inventory_bp = Blueprint('inventory', __name__, url_prefix='/api/inventory')


@inventory_bp.route('')
@login_required
@permission_required('manage_inventory', 'view_products')
def list_inventory():
    return jsonify(InventoryService.list(request.args))


@inventory_bp.route('/stats')
@login_required
@permission_required('manage_inventory')
def inventory_stats():
    return jsonify(InventoryService.get_statistics())


@inventory_bp.route('/low-stock')
@login_required
@permission_required('manage_inventory', 'view_products')
def low_stock():
    return jsonify(InventoryService.low_stock(request.args.get('limit', type=int)))


@inventory_bp.route('/out-of-stock')
@login_required
@permission_required('manage_inventory', 'view_products')
def out_of_stock():
    return jsonify(InventoryService.out_of_stock())


@inventory_bp.route('/check', methods=['POST'])
@login_required
def check_stock():
    return jsonify(SaleService.validate_stock(request.get_json(silent=True)))


@inventory_bp.route('/adjust', methods=['POST'])
@login_required
@permission_required('manage_inventory')
def adjust_stock():
    return jsonify(InventoryService.adjust_stock(request.get_json(silent=True), actor())), 201


@inventory_bp.route('/movements')
@login_required
@permission_required('manage_inventory')
def list_movements():
    return jsonify(InventoryService.get_movements(request.args))


@inventory_bp.route('/movements', methods=['POST'])
@login_required
@permission_required('manage_inventory')
def create_movement():
    return jsonify(InventoryService.process_movement(request.get_json(silent=True), actor())), 201


@inventory_bp.route('/product/<int:product_id>')
@login_required
@permission_required('manage_inventory', 'view_products')
def inventory_by_product(product_id):
    return jsonify(InventoryService.get_by_product(product_id).to_dict())


@inventory_bp.route('/product/<int:product_id>/movements')
@login_required
@permission_required('manage_inventory')
def product_movements(product_id):
    return jsonify(InventoryService.get_product_movements(product_id, request.args))


@inventory_bp.route('/<int:inventory_id>')
@login_required
@permission_required('manage_inventory', 'view_products')
def get_inventory(inventory_id):
    return jsonify(InventoryService.get(inventory_id).to_dict())


@inventory_bp.route('/<int:inventory_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_inventory')
def update_inventory(inventory_id):
    inventory = InventoryService.update(inventory_id, request.get_json(silent=True), actor())
    return jsonify(inventory.to_dict())
