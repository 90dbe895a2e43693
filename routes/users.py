from flask import Blueprint, jsonify, request
from flask_login import login_required

from models.user import ADMIN
from routes.decorators import role_required, actor
from services.user_service import UserService

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


@users_bp.route('')
@login_required
@role_required(ADMIN)
def list_users():
    return jsonify(UserService.list(request.args))


@users_bp.route('', methods=['POST'])
@login_required
@role_required(ADMIN)
def create_user():
    user = UserService.create(request.get_json(silent=True), actor())
    return jsonify(user.to_dict()), 201


@users_bp.route('/active')
@login_required
def active_users():
    return jsonify(UserService.active())


@users_bp.route('/search')
@login_required
def search_users():
    return jsonify(UserService.search(request.args.get('q', ''), request.args.get('limit', 10, type=int)))


@users_bp.route('/role/<role>')
@login_required
@role_required(ADMIN)
def users_by_role(role):
    return jsonify(UserService.by_role(role))


@users_bp.route('/stats')
@login_required
@role_required(ADMIN)
def user_stats():
    return jsonify(UserService.statistics())


@users_bp.route('/<int:user_id>')
@login_required
@role_required(ADMIN)
def get_user(user_id):
    return jsonify(UserService.get(user_id))


@users_bp.route('/<int:user_id>', methods=['PUT', 'PATCH'])
@login_required
@role_required(ADMIN)
def update_user(user_id):
    user = UserService.update(user_id, request.get_json(silent=True), actor())
    return jsonify(user.to_dict())


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@login_required
@role_required(ADMIN)
def delete_user(user_id):
    return jsonify(UserService.delete(user_id, actor()))


@users_bp.route('/<int:user_id>/reset-password', methods=['POST'])
@login_required
@role_required(ADMIN)
def reset_password(user_id):
    UserService.reset_password(user_id, request.get_json(silent=True), actor())
    return jsonify({'message': 'Senha redefinida com sucesso'})


@users_bp.route('/<int:user_id>/status', methods=['PATCH'])
@login_required
@role_required(ADMIN)
def change_status(user_id):
    user = UserService.change_status(user_id, request.get_json(silent=True), actor())
    return jsonify(user.to_dict())
