"""
Configuration partagée pour tous les tests.

Base SQLite en mémoire (une par test) à la place de PostgreSQL ; la dépendance
get_db est remplacée pour que l'API et le test partagent la même session.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base, build_engine, get_db
from app.dependencies import get_token_issuer
from app.main import app as fastapi_app
from app.models.company import Company
from app.models.ledger import Reward, TicketTransaction, TransactionType
from app.models.links import ParentStudent, StudentTeacher
from app.models.profile import Profile, Role, Status
from app.services.authorization import Caller


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """Client HTTP de test branché sur la base SQLite du test."""
    fastapi_app.dependency_overrides[get_db] = lambda: db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


# --- Fabriques ---

@pytest.fixture
def company(db):
    company = Company(name="École de musique")
    db.add(company)
    db.commit()
    return company


@pytest.fixture
def make_profile(db):
    def _make(company, role=Role.STUDENT, status=Status.ACTIVE, first_name="Alice", last_name="Martin"):
        profile = Profile(
            company_id=company.id,
            role=role.value,
            status=status.value,
            first_name=first_name,
            last_name=last_name,
        )
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def admin(company, make_profile):
    return make_profile(company, Role.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def teacher(company, make_profile):
    return make_profile(company, Role.TEACHER, first_name="Tom", last_name="Prof")


@pytest.fixture
def student(company, make_profile):
    return make_profile(company, Role.STUDENT, first_name="Emma", last_name="Élève")


@pytest.fixture
def parent(company, make_profile):
    return make_profile(company, Role.PARENT, first_name="Paul", last_name="Parent")


@pytest.fixture
def link(db):
    """Crée une liaison professeur → élève ou parent → élève."""
    def _link(owner, student):
        if owner.role == Role.TEACHER.value:
            db.add(StudentTeacher(student_id=student.id, teacher_id=owner.id))
        else:
            db.add(ParentStudent(parent_id=owner.id, student_id=student.id))
        db.commit()
    return _link


@pytest.fixture
def credit(db):
    """Crédite directement le registre d'un élève."""
    def _credit(student, amount):
        db.add(TicketTransaction(
            student_id=student.id,
            company_id=student.company_id,
            amount=amount,
            type=TransactionType.MANUAL_ADD.value,
        ))
        db.commit()
    return _credit


@pytest.fixture
def make_reward(db):
    def _make(company, cost=50, name="Place de concert"):
        reward = Reward(company_id=company.id, name=name, cost=cost)
        db.add(reward)
        db.commit()
        return reward
    return _make


def caller_for(profile, role=None, viewing_student_id=None) -> Caller:
    return Caller(
        id=profile.id,
        company_id=profile.company_id,
        role=Role(role or profile.role),
        viewing_student_id=viewing_student_id,
    )


@pytest.fixture
def as_caller():
    return caller_for


@pytest.fixture
def auth_headers():
    """En-têtes Authorization pour un profil (jeton d'accès signé)."""
    def _headers(profile, role=None, viewing_student_id=None):
        token = get_token_issuer().create_access_token(
            profile.id, Role(role or profile.role).value, profile.company_id, viewing_student_id
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers
