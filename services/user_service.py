import logging

from sqlalchemy import func, or_

from forms.user_forms import CreateUserForm, UpdateUserForm, ResetPasswordForm, UserStatusForm, UserFiltersForm
from models import db, User
from models.user import ROLES, SALESPERSON
from services.errors import ApiError
from services.utils import atomic, page_params, paginate, like, log_action

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    def _get(user_id):
        user = db.session.get(User, user_id)
        if user is None:
            raise ApiError('Usuário não encontrado', 404)
        return user

    @staticmethod
    def _check_email(email, exclude_id=None):
        query = User.query.filter(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise ApiError('Email já cadastrado', 409)

    @staticmethod
    def authenticate(email, password):
        user = User.query.filter(func.lower(User.email) == email.strip().lower()).first()
        if user is None or not user.check_password(password):
            logger.warning('Failed login for %s', email)
            raise ApiError('Email ou senha inválidos', 401)
        if not user.is_active:
            raise ApiError('Usuário inativo', 403)
        return user

    @staticmethod
    def list(args=None):
        form = UserFiltersForm.from_args(args).validate_or_raise()
        query = User.query
        if form.search.data:
            term = like(form.search.data)
            query = query.filter(or_(User.name.ilike(term), User.email.ilike(term)))
        if form.role.data:
            query = query.filter(User.role == form.role.data)
        if form.is_active.data is not None:
            query = query.filter(User.is_active.is_(form.is_active.data))
        query = query.order_by(User.name)
        page, limit = page_params(form)
        return paginate(query, page, limit)

    @staticmethod
    def get(user_id):
        user = UserService._get(user_id)
        data = user.to_dict()
        data['salesCount'] = user.sales.count()
        return data

    @staticmethod
    def active():
        return [u.to_dict() for u in User.query.filter(User.is_active.is_(True)).order_by(User.name).all()]

    @staticmethod
    def by_role(role):
        role = role.upper()
        if role not in ROLES:
            raise ApiError('Perfil inválido', 400)
        users = User.query.filter(User.role == role, User.is_active.is_(True)).order_by(User.name).all()
        return [u.to_dict() for u in users]

    @staticmethod
    def search(term, limit=10):
        query = User.query.filter(User.is_active.is_(True))
        if term:
            query = query.filter(or_(User.name.ilike(like(term)), User.email.ilike(like(term))))
        return [{'value': u.id, 'label': u.name, 'role': u.role}
                for u in query.order_by(User.name).limit(limit).all()]

    @staticmethod
    def create(data, actor):
        form = CreateUserForm.from_json(data).validate_or_raise()
        email = form.email.data.strip().lower()
        UserService._check_email(email)
        with atomic():
            user = User(
                name=form.name.data.strip(),
                email=email,
                role=form.role.data or SALESPERSON,
                is_active=True if form.is_active.data is None else form.is_active.data,
            )
            user.set_password(form.password.data)
            db.session.add(user)
        log_action(actor, 'user.create', user.id, role=user.role)
        return user

    @staticmethod
    def update(user_id, data, actor):
        user = UserService._get(user_id)
        form = UpdateUserForm.from_json(data).validate_or_raise()
        changes = form.provided()
        if changes.get('email'):
            changes['email'] = changes['email'].strip().lower()
            UserService._check_email(changes['email'], exclude_id=user.id)
        if user.id == actor.id and changes.get('is_active') is False:
            raise ApiError('Você não pode desativar sua própria conta', 400)
        with atomic():
            if changes.get('name'):
                user.name = changes['name'].strip()
            if changes.get('email'):
                user.email = changes['email']
            if changes.get('role'):
                user.role = changes['role']
            if changes.get('password'):
                user.set_password(changes['password'])
            if changes.get('is_active') is not None:
                user.is_active = changes['is_active']
        log_action(actor, 'user.update', user.id, fields=','.join(k for k in changes if k != 'password'))
        return user

    @staticmethod
    def delete(user_id, actor):
        """Users with sales are deactivated, others removed."""
        user = UserService._get(user_id)
        if user.id == actor.id:
            raise ApiError('Você não pode excluir sua própria conta', 400)
        with atomic():
            if user.sales.count() > 0 or user.movements.count() > 0:
                user.is_active = False
                result = {'deleted': False, 'deactivated': True,
                          'message': 'Usuário possui registros e foi desativado'}
            else:
                db.session.delete(user)
                result = {'deleted': True, 'deactivated': False, 'message': 'Usuário excluído com sucesso'}
        log_action(actor, 'user.delete', user_id, deactivated=result['deactivated'])
        return result

    @staticmethod
    def reset_password(user_id, data, actor):
        user = UserService._get(user_id)
        form = ResetPasswordForm.from_json(data).validate_or_raise()
        with atomic():
            user.set_password(form.new_password.data)
        log_action(actor, 'user.reset_password', user.id)
        return user

    @staticmethod
    def change_status(user_id, data, actor):
        user = UserService._get(user_id)
        form = UserStatusForm.from_json(data).validate_or_raise()
        if user.id == actor.id and not form.is_active.data:
            raise ApiError('Você não pode desativar sua própria conta', 400)
        with atomic():
            user.is_active = form.is_active.data
        log_action(actor, 'user.status', user.id, active=user.is_active)
        return user

    @staticmethod
    def statistics():
        total = User.query.count()
        active = User.query.filter(User.is_active.is_(True)).count()
        by_role = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
        return {
            'total': total,
            'active': active,
            'inactive': total - active,
            'byRole': {role: by_role.get(role, 0) for role in ROLES},
        }
