import logging

from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate

from visual_flows.config import Config
from visual_flows.database import db, init_db


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'))

    CORS(app,
         resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', [])}},
         supports_credentials=False,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "OPTIONS"])

    db.init_app(app)
    migrate = Migrate(app, db)
    init_db(app)

    # Handler catalog is built once per process and shared by all runs
    from visual_flows.operations import build_default_registry
    app.extensions['visual_flows.registry'] = build_default_registry(app.config)

    from visual_flows.routes import flow_runs
    app.register_blueprint(flow_runs.flow_runs_bp)

    return app
