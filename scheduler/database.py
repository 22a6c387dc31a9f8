from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from scheduler.core import config


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith('sqlite'):
        connect_args = {'check_same_thread': False, 'timeout': 30}

    built = create_engine(database_url, connect_args=connect_args)

    if built.dialect.name == 'sqlite':
        # SQLite leaves foreign keys off per connection; cascades depend on it.
        @event.listens_for(built, 'connect')
        def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    return built


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
