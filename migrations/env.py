"""Alembic environment for the bomtrack schema.

Runs inside ``flask db`` so the app's engine and metadata are used, unless
``ALEMBIC_DATABASE_URL`` points migrations at a different database (for
example a direct, non-pooled Postgres URL).
"""
import logging
import os
from logging.config import fileConfig

from alembic import context
from flask import current_app
from sqlalchemy import create_engine, text

from bomtrack import models  # noqa: F401  # register every table on the metadata
from bomtrack.config import _normalize_db_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)
logger = logging.getLogger('alembic.env')

migrate_ext = current_app.extensions['migrate']
target_metadata = migrate_ext.db.metadata


def _engine():
    override = _normalize_db_url(os.environ.get('ALEMBIC_DATABASE_URL'))
    return create_engine(override) if override else migrate_ext.db.engine


def _url_for_ini(engine) -> str:
    # ConfigParser interpolates '%', so escape it in passwords
    return engine.url.render_as_string(hide_password=False).replace('%', '%%')


def _skip_empty_autogenerate(context_, revision, directives):
    if getattr(config.cmd_opts, 'autogenerate', False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info('No schema changes detected; no revision written.')


def _drop_stale_batch_tables(connection) -> None:
    """A crashed SQLite batch migration leaves _alembic_tmp_* tables that block reruns."""
    rows = connection.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name LIKE '_alembic_tmp_%'")
    ).fetchall()
    for (table_name,) in rows:
        connection.execute(text(f'DROP TABLE IF EXISTS "{table_name}"'))
        logger.info('Dropped leftover batch table %s', table_name)
    if rows:
        connection.commit()


def run_offline(engine) -> None:
    context.configure(url=_url_for_ini(engine), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_online(engine) -> None:
    options = dict(migrate_ext.configure_args)
    options['transaction_per_migration'] = True
    options.setdefault('process_revision_directives', _skip_empty_autogenerate)

    with engine.connect() as connection:
        if connection.dialect.name == 'sqlite':
            _drop_stale_batch_tables(connection)
        context.configure(connection=connection, target_metadata=target_metadata, **options)
        with context.begin_transaction():
            context.run_migrations()


engine = _engine()
config.set_main_option('sqlalchemy.url', _url_for_ini(engine))
if context.is_offline_mode():
    run_offline(engine)
else:
    run_online(engine)
