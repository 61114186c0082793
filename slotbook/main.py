import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from slotbook.core import config
from slotbook.database import Base, SessionLocal, engine, ensure_slot_schema, ensure_appointment_schema
from slotbook.models import appointment, consultation_type, professional, slot  # noqa: F401
from slotbook.routes import appointment_routes, availability_routes, consultation_type_routes, maintenance_routes
from slotbook.scheduling.clock import get_clock
from slotbook.scheduling.sweeper import ExpirySweeper

config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)

sweeper = ExpirySweeper(SessionLocal, get_clock())


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_slot_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('startup')
def start_sweeper() -> None:
    if config.SWEEPER_ENABLED:
        sweeper.start()


@app.on_event('shutdown')
def stop_sweeper() -> None:
    sweeper.stop()


@app.get('/')
def root():
    return {'status': 'Slotbook API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(consultation_type_routes.router, prefix='/consultation-types')
app.include_router(maintenance_routes.router, prefix='/maintenance')
