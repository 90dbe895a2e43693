from flask import Blueprint, jsonify, request
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.product_service import ProductService

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


@products_bp.route('')
@login_required
def list_products():
    return jsonify(ProductService.list(request.args))


@products_bp.route('', methods=['POST'])
@login_required
@permission_required('manage_products')
def create_product():
    product = ProductService.create(request.get_json(silent=True), actor())
    return jsonify(product.to_dict()), 201


@products_bp.route('/search')
@login_required
def search_products():
    return jsonify(ProductService.search(request.args))


@products_bp.route('/active')
@login_required
def active_products():
    return jsonify(ProductService.active())


@products_bp.route('/select')
@login_required
def product_options():
    return jsonify(ProductService.select_options(request.args.get('categoryId', type=int)))


@products_bp.route('/stats')
@login_required
@permission_required('view_reports')
def product_stats():
    return jsonify(ProductService.statistics())


@products_bp.route('/check-code')
@login_required
def check_code():
    return jsonify(ProductService.check_code(request.args.get('code', ''), request.args.get('excludeId', type=int)))


@products_bp.route('/code/<code>')
@login_required
def product_by_code(code):
    return jsonify(ProductService.get_by_code(code).to_dict())


@products_bp.route('/category/<int:category_id>')
@login_required
def products_by_category(category_id):
    return jsonify(ProductService.by_category(category_id))


@products_bp.route('/supplier/<int:supplier_id>')
@login_required
def products_by_supplier(supplier_id):
    return jsonify(ProductService.by_supplier(supplier_id))


@products_bp.route('/import', methods=['POST'])
@login_required
@permission_required('manage_products')
def import_products():
    result = ProductService.bulk_import(request.get_json(silent=True), actor())
    return jsonify(result), 201 if result['created'] else 200


@products_bp.route('/<int:product_id>')
@login_required
def get_product(product_id):
    return jsonify(ProductService.get(product_id))


@products_bp.route('/<int:product_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_products')
def update_product(product_id):
    product = ProductService.update(product_id, request.get_json(silent=True), actor())
    return jsonify(product.to_dict())


@products_bp.route('/<int:product_id>', methods=['DELETE'])
@login_required
@permission_required('manage_products')
def delete_product(product_id):
    ProductService.delete(product_id, actor())
    return jsonify({'message': 'Produto desativado com sucesso'})
