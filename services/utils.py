import logging
from contextlib import contextmanager
from datetime import datetime, time

from flask import current_app
from flask_babel import to_user_timezone, to_utc
from sqlalchemy import asc, desc

from models import db

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('comercial.audit')


@contextmanager
def atomic():
    """Commit the session on success, roll it back and re-raise on any error."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def page_params(form):
    page = form.page.data or 1
    limit = form.limit.data or current_app.config.get('DEFAULT_PAGE_SIZE', 10)
    limit = min(limit, current_app.config.get('MAX_PAGE_SIZE', 100))
    return page, limit


def paginate(query, page, limit, serializer=None):
    pagination = query.paginate(page=page, per_page=limit, error_out=False)
    serializer = serializer or (lambda obj: obj.to_dict())
    return {
        'data': [serializer(obj) for obj in pagination.items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': pagination.total,
            'pages': pagination.pages,
            'hasNext': pagination.has_next,
            'hasPrev': pagination.has_prev,
        },
    }


def order_by(query, column, direction):
    return query.order_by(desc(column) if direction == 'desc' else asc(column))


def like(term):
    return f'%{term.strip()}%'


def log_action(user, action, target=None, **extra):
    """Audit line for a mutation; never touches the session."""
    user_label = f'{user.id}:{user.email}' if user is not None else 'system'
    details = ' '.join(f'{key}={value}' for key, value in extra.items())
    audit_logger.info('[AUDIT] user=%s action=%s target=%s %s', user_label, action, target, details)


def local_date(moment=None):
    """Calendar date of a naive UTC datetime in the configured timezone."""
    return to_user_timezone(moment or datetime.utcnow()).date()


def local_day_start(day):
    """Naive UTC instant at which `day` starts in the configured timezone."""
    return to_utc(datetime.combine(day, time.min))
