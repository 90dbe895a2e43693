from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user

from forms.auth_forms import LoginForm
from models.user import PERMISSIONS
from routes.decorators import actor
from services.user_service import UserService
from services.utils import log_action

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm.from_json(request.get_json(silent=True)).validate_or_raise()
    user = UserService.authenticate(form.email.data, form.password.data)
    login_user(user, remember=bool(form.remember.data))
    log_action(user, 'auth.login', user.id)
    return jsonify({'message': 'Login realizado com sucesso', 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    log_action(actor(), 'auth.logout', current_user.id)
    logout_user()
    return jsonify({'message': 'Logout realizado com sucesso'})


@auth_bp.route('/me')
@login_required
def me():
    data = current_user.to_dict()
    data['permissions'] = sorted(PERMISSIONS.get(current_user.role, set()))
    return jsonify(data)
