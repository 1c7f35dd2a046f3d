from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_principal
from backend.auth.passwords import MIN_PASSWORD_LENGTH
from backend.auth.principal import Principal, PrincipalKind
from backend.database import ensure_database_ready, get_db
from backend.routes.doctor_routes import DoctorLocation, doctor_to_response, require_text
from backend.services import accounts

router = APIRouter(tags=['auth'])


def _normalize_email(value: str) -> str:
    normalized = accounts.normalize_email(value)
    if not normalized or '@' not in normalized:
        raise ValueError('A valid email is required.')
    return normalized


class RegisterPatientRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return require_text(value)

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class RegisterDoctorRequest(RegisterPatientRequest):
    specialty: str
    experience: int = Field(default=0, ge=0)
    location: DoctorLocation = Field(default_factory=DoctorLocation)
    consultation_locations: list[str] = Field(default_factory=list)

    @field_validator('specialty')
    @classmethod
    def validate_specialty(cls, value: str) -> str:
        return require_text(value)

    @field_validator('consultation_locations')
    @classmethod
    def validate_consultation_locations(cls, value: list[str]) -> list[str]:
        return accounts.clean_locations(value)


class LoginRequest(BaseModel):
    email: str
    password: str
    user_type: PrincipalKind

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return accounts.normalize_email(value)


class PrincipalResponse(BaseModel):
    id: int
    name: str
    email: str
    user_type: PrincipalKind
    specialty: str | None = None
    experience: int | None = None
    location: DoctorLocation | None = None
    consultation_locations: list[str] | None = None


class AuthResponse(PrincipalResponse):
    token: str
    token_type: str = 'bearer'


def principal_to_response(principal: Principal) -> PrincipalResponse:
    record = principal.record
    if principal.is_doctor:
        return PrincipalResponse(user_type=principal.kind, **doctor_to_response(record).model_dump())
    return PrincipalResponse(id=record.id, name=record.name, email=record.email, user_type=principal.kind)


def issue_token(principal: Principal) -> AuthResponse:
    profile = principal_to_response(principal)
    token = jwt_handler.create_access_token(principal.id, principal.kind.value)
    return AuthResponse(**profile.model_dump(), token=token)


@router.post('/register/patient', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_patient(data: RegisterPatientRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    patient = accounts.register_patient(db, name=data.name, email=data.email, password=data.password)
    return issue_token(Principal.of(patient))


@router.post('/register/doctor', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_doctor(data: RegisterDoctorRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    doctor = accounts.register_doctor(
        db,
        name=data.name,
        email=data.email,
        password=data.password,
        specialty=data.specialty,
        experience=data.experience,
        city=data.location.city,
        state=data.location.state,
        consultation_locations=data.consultation_locations,
    )
    return issue_token(Principal.of(doctor))


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    principal = accounts.authenticate(db, email=data.email, password=data.password, kind=data.user_type)
    return issue_token(principal)


@router.get('/me', response_model=PrincipalResponse)
def me(principal: Principal = Depends(get_current_principal)):
    return principal_to_response(principal)
