from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.customer_service import CustomerService
from services.export import XLSX_MIMETYPE

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('')
@login_required
@permission_required('manage_customers', 'view_customers')
def list_customers():
    return jsonify(CustomerService.list(request.args))


@customers_bp.route('', methods=['POST'])
@login_required
@permission_required('manage_customers')
def create_customer():
    customer = CustomerService.create(request.get_json(silent=True), actor())
    return jsonify(customer.to_dict()), 201


@customers_bp.route('/validate', methods=['POST'])
@login_required
def validate_document():
    return jsonify(CustomerService.validate_document(request.get_json(silent=True)))


@customers_bp.route('/stats')
@login_required
@permission_required('view_reports')
def customer_stats():
    return jsonify(CustomerService.statistics())


@customers_bp.route('/export')
@login_required
@permission_required('manage_customers')
def export_customers():
    return send_file(CustomerService.export_xlsx(request.args), mimetype=XLSX_MIMETYPE,
                     as_attachment=True, download_name='clientes.xlsx')


@customers_bp.route('/<int:customer_id>')
@login_required
@permission_required('manage_customers', 'view_customers')
def get_customer(customer_id):
    return jsonify(CustomerService.get(customer_id))


@customers_bp.route('/<int:customer_id>/sales')
@login_required
@permission_required('manage_customers', 'view_customers')
def customer_sales(customer_id):
    return jsonify(CustomerService.get_sales(customer_id, request.args, actor()))


@customers_bp.route('/<int:customer_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_customers')
def update_customer(customer_id):
    customer = CustomerService.update(customer_id, request.get_json(silent=True), actor())
    return jsonify(customer.to_dict())


@customers_bp.route('/<int:customer_id>', methods=['DELETE'])
@login_required
@permission_required('manage_customers')
def delete_customer(customer_id):
    return jsonify(CustomerService.delete(customer_id, actor()))
