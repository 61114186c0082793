from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from slotbook.core import config


def build_engine(database_url: str, **kwargs) -> Engine:
    connect_args = kwargs.pop('connect_args', {})
    if database_url.startswith('postgresql'):
        connect_args.setdefault('options', f'-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}')
    elif database_url.startswith('sqlite'):
        connect_args.setdefault('check_same_thread', False)
    if config.DB_ISOLATION_LEVEL:
        kwargs.setdefault('isolation_level', config.DB_ISOLATION_LEVEL)
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True, **kwargs)


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


_schema_lock = Lock()
_slot_schema_checked = False
_appointment_schema_checked = False


def ensure_slot_schema() -> None:
    global _slot_schema_checked

    if _slot_schema_checked:
        return

    with _schema_lock:
        if _slot_schema_checked:
            return

        inspector = inspect(engine)

        if 'availability_slots' not in inspector.get_table_names():
            _slot_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_availability_slots_end ON availability_slots(end_time)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_availability_slots_owner_range '
                    'ON availability_slots(owner_id, start_time, end_time)'
                )
            )

        _slot_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('reminder_24h_sent', 'ALTER TABLE appointments ADD COLUMN reminder_24h_sent BOOLEAN DEFAULT FALSE'),
            ('reminder_24h_sent_at', 'ALTER TABLE appointments ADD COLUMN reminder_24h_sent_at TIMESTAMP'),
            ('reminder_1h_sent', 'ALTER TABLE appointments ADD COLUMN reminder_1h_sent BOOLEAN DEFAULT FALSE'),
            ('reminder_1h_sent_at', 'ALTER TABLE appointments ADD COLUMN reminder_1h_sent_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_owner_start ON appointments(owner_id, start_time)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_owner_start '
                    "ON appointments(owner_id, start_time) WHERE status = 'active'"
                )
            )

        _appointment_schema_checked = True
