from functools import wraps

from flask_login import current_user

from services.errors import ApiError


def actor():
    """The logged-in User instance behind the current_user proxy."""
    return current_user._get_current_object()


def role_required(*roles):
    """
    Restrict a view to users holding one of the given roles.
    Example: @role_required('ADMIN', 'MANAGER')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise ApiError('Autenticação necessária', 401)
            if getattr(current_user, 'role', None) not in roles:
                raise ApiError('Acesso negado', 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def permission_required(*permissions):
    """Allow the view when the user holds any of the given permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise ApiError('Autenticação necessária', 401)
            if not any(current_user.has_permission(p) for p in permissions):
                raise ApiError('Acesso negado', 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
