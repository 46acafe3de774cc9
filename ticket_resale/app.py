from flask import Flask
from flasgger import Swagger
import logging
import uuid
from ticket_resale.config import Config
from ticket_resale.errors import register_error_handlers
from ticket_resale.extensions import db, jwt, BLOCKLIST
from ticket_resale.models import User


def configure_logging(app):
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def create_app(config_overrides=None):
    app = Flask(__name__)

    # Configuration
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    jwt.init_app(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_in_blocklist(jwt_header, jwt_payload):
        return jwt_payload['jti'] in BLOCKLIST

    @jwt.user_lookup_loader
    def load_user(jwt_header, jwt_payload):
        try:
            return db.session.get(User, uuid.UUID(jwt_payload['sub']))
        except ValueError:
            return None

    # Purpose-scoped tokens (email verification) are not session tokens
    @jwt.token_verification_loader
    def reject_purpose_tokens(jwt_header, jwt_payload):
        return 'purpose' not in jwt_payload

    Swagger(app)
    register_error_handlers(app)

    # Register Blueprints
    from ticket_resale.routes.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from ticket_resale.routes.tickets import tickets_bp
    app.register_blueprint(tickets_bp, url_prefix='/api/tickets')

    from ticket_resale.routes.payments import payments_bp
    app.register_blueprint(payments_bp, url_prefix='/api/payments')

    from ticket_resale.routes.webhooks import webhooks_bp
    app.register_blueprint(webhooks_bp, url_prefix='/api/webhooks')

    from ticket_resale.routes.payouts import payouts_bp
    app.register_blueprint(payouts_bp, url_prefix='/api/payouts')

    from ticket_resale.routes.notifications import notifications_bp
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')

    from ticket_resale.routes.kyc import kyc_bp
    app.register_blueprint(kyc_bp, url_prefix='/api/kyc')

    from ticket_resale.routes.admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    from ticket_resale.cli import register_commands
    register_commands(app)

    @app.route('/health')
    def health():
        try:
            db.session.execute(db.text('SELECT 1'))
            return {"service": "ticket-resale", "status": "healthy"}, 200
        except Exception as e:
            logging.getLogger(__name__).error("Health check failed: %s", e)
            return {"service": "ticket-resale", "status": "unhealthy"}, 503

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000)
