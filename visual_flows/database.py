"""
Database handle shared by models and services.
"""
import logging

from flask_sqlalchemy import SQLAlchemy

logger = logging.getLogger(__name__)

db = SQLAlchemy()


def init_db(app):
    """Create tables for all registered models."""
    # Import models so their tables are registered on the metadata
    from visual_flows import models  # noqa: F401

    with app.app_context():
        db.create_all()
        logger.debug(f"Database initialized: {app.config.get('SQLALCHEMY_DATABASE_URI')}")
