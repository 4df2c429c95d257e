import os
import logging
from flask import current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)


def _create_engine(database_url, engine_options=None):
    """Build the engine, preparing SQLite files and pragmas when needed."""
    options = dict(engine_options or {})
    url = make_url(database_url)

    if url.get_backend_name() == 'sqlite':
        options.pop('pool_recycle', None)
        options.setdefault('connect_args', {'check_same_thread': False, 'timeout': 20})
        if url.database and url.database != ':memory:':
            os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

    engine = create_engine(database_url, **options)

    if url.get_backend_name() == 'sqlite':
        @event.listens_for(engine, 'connect')
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys = ON')
            cursor.execute('PRAGMA busy_timeout = 30000')
            cursor.close()

    return engine


def get_db():
    """Get the request-scoped database session."""
    if 'db' not in g:
        try:
            session_factory = current_app.extensions['db_session_factory']
            g.db = session_factory()
        except Exception as e:
            logger.error(f"Database connection error: {str(e)}", exc_info=True)
            raise
    return g.db


def close_db(e=None):
    """Close database session."""
    db = g.pop('db', None)
    if db is not None:
        try:
            if e is not None:
                db.rollback()
        finally:
            db.close()


def init_db(app):
    """Create the engine and session factory and make sure the schema exists."""
    from examtracker.models.database_models import Base

    try:
        engine = _create_engine(app.config['SQLALCHEMY_DATABASE_URI'],
                                app.config.get('SQLALCHEMY_ENGINE_OPTIONS'))
        Base.metadata.create_all(engine)
        app.extensions['db_engine'] = engine
        app.extensions['db_session_factory'] = sessionmaker(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization error: {str(e)}", exc_info=True)
        raise
