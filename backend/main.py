import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.errors import AppError, Internal, ValidationError
from backend.database import init_db
from backend.routes import appointment_routes, auth_routes, availability_routes, doctor_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Doctor Appointment Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={'detail': exc.detail, 'code': exc.code},
        headers=exc.headers,
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error('%s %s hit a database error', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=Internal.status_code,
        content={'detail': Internal.default_detail, 'code': Internal.code},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning('Validation error for %s: %s', request.url.path, exc.errors())
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={
            'detail': 'Invalid request.',
            'code': ValidationError.code,
            'errors': jsonable_encoder(exc.errors()),
        },
    )


@app.get('/')
def root():
    return {'status': 'Doctor Appointment API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(doctor_routes.router, prefix='/doctors')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
