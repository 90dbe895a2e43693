import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify
from flask_babel import Babel
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from models.user import User
from services.errors import ApiError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

# Initialize extensions
login_manager = LoginManager()
babel = Babel()


def configure_logging(app):
    root = logging.getLogger()
    root.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    if not any(getattr(h, '_comercial', False) for h in root.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._comercial = True
        root.addHandler(console_handler)
        log_dir = app.config.get('LOG_DIR')
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'comercial.log'),
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8',
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            file_handler._comercial = True
            root.addHandler(file_handler)


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            logger.error('API error %s: %s', error.status_code, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        messages = {
            404: 'Recurso não encontrado',
            405: 'Método não permitido',
        }
        return jsonify({'error': messages.get(error.code, error.description)}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.exception('Unhandled error: %s', error)
        return jsonify({'error': 'Erro interno do servidor'}), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)
    configure_logging(app)

    db.init_app(app)
    login_manager.init_app(app)

    # pt_BR for every request; messages and receipts are Portuguese
    def get_locale():
        return app.config.get('BABEL_DEFAULT_LOCALE', 'pt_BR')
    babel.init_app(app, locale_selector=get_locale)

    # Flask-Login user loader
    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Autenticação necessária'}), 401

    register_error_handlers(app)

    # Register Blueprints
    from routes.auth import auth_bp
    app.register_blueprint(auth_bp)
    from routes.users import users_bp
    app.register_blueprint(users_bp)
    from routes.categories import categories_bp
    app.register_blueprint(categories_bp)
    from routes.suppliers import suppliers_bp
    app.register_blueprint(suppliers_bp)
    from routes.products import products_bp
    app.register_blueprint(products_bp)
    from routes.customers import customers_bp
    app.register_blueprint(customers_bp)
    from routes.inventory import inventory_bp
    app.register_blueprint(inventory_bp)
    from routes.sales import sales_bp
    app.register_blueprint(sales_bp)
    from routes.pos import pos_bp
    app.register_blueprint(pos_bp)
    from routes.dashboard import dashboard_bp
    app.register_blueprint(dashboard_bp)
    from routes.reports import reports_bp
    app.register_blueprint(reports_bp)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    logger.info('Application created (%s)', config_class.__name__)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
