import logging
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS

from .config import config_by_name
from .identity import IdentityProvider
from .store import RecordStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_app(config_name='default', store=None, identity=None, clock=None):
    """
    Create and configure an instance of the Flask application.

    The record store, identity provider and clock are injected; when omitted
    they are built from the configuration.
    """
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    logging.basicConfig(level=logging.INFO)

    if store is None:
        store = RecordStore(app.config['DATABASE_PATH'])
        store.initialize()
    if identity is None:
        identity = IdentityProvider(
            store.db_path,
            app.config['AUTH_SECRET_KEY'],
            app.config['AUTH_TOKEN_EXPIRY_HOURS'],
        )

    app.extensions['pcm.store'] = store
    app.extensions['pcm.identity'] = identity
    app.extensions['pcm.clock'] = clock or _utc_now

    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    from .api import api_blueprint
    app.register_blueprint(api_blueprint, url_prefix='/api')

    from .cli import register_commands
    register_commands(app)

    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({"status": "ok"}), 200

    return app
