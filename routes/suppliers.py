from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.export import XLSX_MIMETYPE
from services.supplier_service import SupplierService

suppliers_bp = Blueprint('suppliers', __name__, url_prefix='/api/suppliers')


@suppliers_bp.route('')
@login_required
def list_suppliers():
    return jsonify(SupplierService.list(request.args))


@suppliers_bp.route('', methods=['POST'])
@login_required
@permission_required('manage_suppliers')
def create_supplier():
    supplier = SupplierService.create(request.get_json(silent=True), actor())
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.route('/active')
@login_required
def active_suppliers():
    return jsonify(SupplierService.active())


@suppliers_bp.route('/search')
@login_required
def search_suppliers():
    return jsonify(SupplierService.search(request.args.get('q', ''), request.args.get('limit', 10, type=int)))


@suppliers_bp.route('/state/<state>')
@login_required
def suppliers_by_state(state):
    return jsonify(SupplierService.by_state(state))


@suppliers_bp.route('/stats')
@login_required
@permission_required('view_reports')
def supplier_stats():
    return jsonify(SupplierService.statistics())


@suppliers_bp.route('/export')
@login_required
@permission_required('manage_suppliers')
def export_suppliers():
    return send_file(SupplierService.export_xlsx(), mimetype=XLSX_MIMETYPE,
                     as_attachment=True, download_name='fornecedores.xlsx')


@suppliers_bp.route('/<int:supplier_id>')
@login_required
def get_supplier(supplier_id):
    return jsonify(SupplierService.get(supplier_id))


@suppliers_bp.route('/<int:supplier_id>/products')
@login_required
def supplier_products(supplier_id):
    return jsonify(SupplierService.products(supplier_id))


@suppliers_bp.route('/<int:supplier_id>/performance')
@login_required
@permission_required('view_reports')
def supplier_performance(supplier_id):
    return jsonify(SupplierService.performance(supplier_id))


@suppliers_bp.route('/<int:supplier_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_suppliers')
def update_supplier(supplier_id):
    supplier = SupplierService.update(supplier_id, request.get_json(silent=True), actor())
    return jsonify(supplier.to_dict())


@suppliers_bp.route('/<int:supplier_id>', methods=['DELETE'])
@login_required
@permission_required('manage_suppliers')
def delete_supplier(supplier_id):
    SupplierService.delete(supplier_id, actor())
    return jsonify({'message': 'Fornecedor desativado com sucesso'})
