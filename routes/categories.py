from flask import Blueprint, jsonify, request
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.category_service import CategoryService

categories_bp = Blueprint('categories', __name__, url_prefix='/api/categories')


@categories_bp.route('')
@login_required
def list_categories():
    return jsonify(CategoryService.list(request.args))


@categories_bp.route('', methods=['POST'])
@login_required
@permission_required('manage_categories')
def create_category():
    category = CategoryService.create(request.get_json(silent=True), actor())
    return jsonify(category.to_dict(with_counts=True)), 201


@categories_bp.route('/search')
@login_required
def search_categories():
    return jsonify(CategoryService.search(request.args.get('q', ''), request.args.get('limit', 10, type=int)))


@categories_bp.route('/stats')
@login_required
@permission_required('view_reports')
def category_stats():
    return jsonify(CategoryService.statistics())


@categories_bp.route('/<int:category_id>')
@login_required
def get_category(category_id):
    return jsonify(CategoryService.get(category_id))


@categories_bp.route('/<int:category_id>/products')
@login_required
def category_products(category_id):
    active_only = request.args.get('all', 'false').lower() != 'true'
    return jsonify(CategoryService.products(category_id, active_only))


@categories_bp.route('/<int:category_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required('manage_categories')
def update_category(category_id):
    category = CategoryService.update(category_id, request.get_json(silent=True), actor())
    return jsonify(category.to_dict(with_counts=True))


@categories_bp.route('/<int:category_id>', methods=['DELETE'])
@login_required
@permission_required('manage_categories')
def delete_category(category_id):
    CategoryService.delete(category_id, actor())
    return jsonify({'message': 'Categoria excluída com sucesso'})
