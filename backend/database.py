import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config
from backend.core.errors import Internal

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

_connect_args = {'check_same_thread': False} if DATABASE_URL.startswith('sqlite') else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

INDEX_STATEMENTS = {
    'availability': [
        'CREATE INDEX IF NOT EXISTS idx_availability_doctor_start ON availability(doctor_id, start_time)',
        'CREATE INDEX IF NOT EXISTS idx_availability_booked_start ON availability(is_booked, start_time)',
    ],
    'appointments': [
        'CREATE INDEX IF NOT EXISTS idx_appointments_patient_status ON appointments(patient_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_doctor_status ON appointments(doctor_id, status)',
    ],
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema() -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        existing_tables = set(inspect(engine).get_table_names())

        with engine.begin() as connection:
            for table_name, statements in INDEX_STATEMENTS.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _schema_checked = True


def init_db() -> None:
    from backend.models import appointment, availability, doctor, patient  # noqa: F401

    Base.metadata.create_all(bind=engine)
    ensure_schema()
    logger.info('Database schema ready.')


def ensure_database_ready() -> None:
    try:
        ensure_schema()
    except SQLAlchemyError as exc:
        logger.exception('Database schema check failed.')
        raise Internal('Database unavailable. Verify DATABASE_URL and database credentials.') from exc
