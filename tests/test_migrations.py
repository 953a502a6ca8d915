"""
Tests for the Flask-Migrate setup and the initial schema revision
"""

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext

from visual_flows.database import db

VERSIONS_DIR = Path(__file__).resolve().parent.parent / 'migrations' / 'versions'


def load_revision(name):
    spec = importlib.util.spec_from_file_location(name, VERSIONS_DIR / f'{name}.py')
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run(module, step):
    engine = sa.create_engine('sqlite://')
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            getattr(module, step)()
    return engine


class TestMigrations:

    def test_migrate_registered(self, app):
        """create_app wires Flask-Migrate to the shared db"""
        assert 'migrate' in app.extensions
        assert app.extensions['migrate'].db is db

    def test_initial_revision_is_root(self):
        """The initial revision starts the history"""
        module = load_revision('a0b1c2d3e4f5_create_visual_flow_tables')
        assert module.revision == 'a0b1c2d3e4f5'
        assert module.down_revision is None

    def test_upgrade_matches_models(self, app):
        """Upgrading an empty database creates every model table with its columns and indexes"""
        module = load_revision('a0b1c2d3e4f5_create_visual_flow_tables')
        engine = run(module, 'upgrade')
        inspector = sa.inspect(engine)

        assert set(inspector.get_table_names()) == set(db.metadata.tables)
        for name, table in db.metadata.tables.items():
            columns = {column['name'] for column in inspector.get_columns(name)}
            assert columns == {column.name for column in table.columns}, name
            indexes = {index['name'] for index in inspector.get_indexes(name)}
            assert indexes == {index.name for index in table.indexes}, name

    def test_downgrade_drops_tables(self):
        """Downgrade removes all visual flow tables"""
        module = load_revision('a0b1c2d3e4f5_create_visual_flow_tables')
        engine = sa.create_engine('sqlite://')
        with engine.begin() as connection:
            context = MigrationContext.configure(connection)
            with Operations.context(context):
                module.upgrade()
                module.downgrade()

        assert sa.inspect(engine).get_table_names() == []
