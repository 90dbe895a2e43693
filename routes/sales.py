from flask import Blueprint, jsonify, request
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.sale_service import SaleService

sales_bp = Blueprint('sales', __name__, url_prefix='/api/sales')


def _sale(sale):
    return jsonify(sale.to_dict())


@sales_bp.route('')
@login_required
@permission_required('manage_sales')
def list_sales():
    return jsonify(SaleService.list_sales(request.args, actor()))


@sales_bp.route('', methods=['POST'])
@login_required
@permission_required('manage_sales')
def create_sale():
    return _sale(SaleService.create_sale(request.get_json(silent=True), actor())), 201


@sales_bp.route('/validate-stock', methods=['POST'])
@login_required
@permission_required('manage_sales')
def validate_stock():
    return jsonify(SaleService.validate_stock(request.get_json(silent=True)))


@sales_bp.route('/<int:sale_id>')
@login_required
@permission_required('manage_sales')
def get_sale(sale_id):
    return _sale(SaleService.get_sale(sale_id, actor()))


@sales_bp.route('/<int:sale_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_sales')
def update_sale(sale_id):
    return _sale(SaleService.update_sale(sale_id, request.get_json(silent=True), actor()))


@sales_bp.route('/<int:sale_id>/discount', methods=['POST'])
@login_required
@permission_required('manage_sales')
def apply_discount(sale_id):
    return _sale(SaleService.apply_discount(sale_id, request.get_json(silent=True), actor()))


@sales_bp.route('/<int:sale_id>/items', methods=['POST'])
@login_required
@permission_required('manage_sales')
def add_item(sale_id):
    return _sale(SaleService.add_item(sale_id, request.get_json(silent=True), actor())), 201


@sales_bp.route('/<int:sale_id>/items/<int:item_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_sales')
def update_item(sale_id, item_id):
    return _sale(SaleService.update_item(sale_id, item_id, request.get_json(silent=True), actor()))


@sales_bp.route('/<int:sale_id>/items/<int:item_id>', methods=['DELETE'])
@login_required
@permission_required('manage_sales')
def remove_item(sale_id, item_id):
    return _sale(SaleService.remove_item(sale_id, item_id, actor()))


@sales_bp.route('/<int:sale_id>/submit', methods=['POST'])
@login_required
@permission_required('manage_sales')
def submit_sale(sale_id):
    return _sale(SaleService.submit_sale(sale_id, actor()))


@sales_bp.route('/<int:sale_id>/confirm', methods=['POST'])
@login_required
@permission_required('manage_sales')
def confirm_sale(sale_id):
    return _sale(SaleService.confirm_sale(sale_id, actor()))


@sales_bp.route('/<int:sale_id>/complete', methods=['POST'])
@login_required
@permission_required('manage_sales')
def complete_sale(sale_id):
    return _sale(SaleService.complete_sale(sale_id, actor()))


@sales_bp.route('/<int:sale_id>/cancel', methods=['POST'])
@login_required
@permission_required('manage_sales')
def cancel_sale(sale_id):
    return _sale(SaleService.cancel_sale(sale_id, request.get_json(silent=True), actor()))


@sales_bp.route('/<int:sale_id>/refund', methods=['POST'])
@login_required
@permission_required('manage_sales')
def refund_sale(sale_id):
    return _sale(SaleService.refund_sale(sale_id, request.get_json(silent=True), actor()))


@sales_bp.route('/<int:sale_id>/receipt')
@login_required
@permission_required('manage_sales')
def sale_receipt(sale_id):
    return jsonify(SaleService.build_receipt(sale_id, actor()))
