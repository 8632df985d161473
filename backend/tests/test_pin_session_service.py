"""
Tests de la connexion par PIN, du rafraîchissement et de la déconnexion forcée.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from app.exceptions import (
    AuthenticationError,
    AuthorizationError,
    PinCollisionError,
    ResourceNotFoundError,
    ValidationError,
)
from app.models.company import Company
from app.models.profile import Role, Status
from app.models.session import ActiveRefreshToken, OneTimePin
from app.schemas.auth import PinGenerate
from app.services import pin_service, session_service
from app.services.session_service import TokenIssuer
from app.timeutils import utcnow


@pytest.fixture
def issuer():
    return TokenIssuer(
        secret_key="secret-de-test",
        algorithm="HS256",
        access_expire_minutes=15,
        refresh_salt="sel-de-test",
        refresh_expire_days=30,
    )


def session_count(db, user_id):
    return db.execute(
        select(func.count()).select_from(ActiveRefreshToken).where(ActiveRefreshToken.user_id == user_id)
    ).scalar()


# --- Jetons ---

def test_jeton_acces_aller_retour(issuer, student):
    token = issuer.create_access_token(student.id, "student", student.company_id)
    caller = issuer.decode_access_token(token)
    assert caller.id == student.id
    assert caller.role == Role.STUDENT
    assert caller.company_id == student.company_id
    assert caller.viewing_student_id is None


def test_jeton_mauvaise_signature(issuer, student):
    token = issuer.create_access_token(student.id, "student", student.company_id)
    other = TokenIssuer("autre-secret", "HS256", 15, "sel", 30)
    with pytest.raises(AuthenticationError):
        other.decode_access_token(token)


def test_jeton_expire(student):
    expired = TokenIssuer("secret", "HS256", -1, "sel", 30)
    token = expired.create_access_token(student.id, "student", student.company_id)
    with pytest.raises(AuthenticationError):
        expired.decode_access_token(token)


def test_hash_refresh_sale(issuer):
    other = TokenIssuer("secret-de-test", "HS256", 15, "autre-sel", 30)
    assert issuer.hash_refresh_token("abc") != other.hash_refresh_token("abc")
    assert len(issuer.hash_refresh_token("abc")) == 64


# --- Génération de PIN ---

def test_generate_pin_par_professeur(db, teacher, student, as_caller):
    result = pin_service.generate_pin(db, as_caller(teacher), PinGenerate(user_id=student.id, target_role="student"))
    assert len(result.pin) == 6 and result.pin.isdigit()
    assert result.expires_at > utcnow()
    assert result.expires_at <= utcnow() + timedelta(minutes=5)


def test_generate_pin_refuse_a_l_eleve(db, student, as_caller):
    with pytest.raises(AuthorizationError):
        pin_service.generate_pin(db, as_caller(student), PinGenerate(user_id=student.id, target_role="student"))


def test_generate_pin_role_incoherent(db, admin, teacher, as_caller):
    with pytest.raises(ValidationError):
        pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=teacher.id, target_role="admin"))


def test_generate_pin_professeur_pour_admin_refuse(db, admin, teacher, as_caller):
    with pytest.raises(AuthorizationError):
        pin_service.generate_pin(db, as_caller(teacher), PinGenerate(user_id=admin.id, target_role="admin"))
    assert db.execute(select(func.count()).select_from(OneTimePin)).scalar() == 0


def test_generate_pin_professeur_pour_professeur_refuse(db, company, teacher, make_profile, as_caller):
    colleague = make_profile(company, Role.TEACHER, first_name="Nina")
    with pytest.raises(AuthorizationError):
        pin_service.generate_pin(db, as_caller(teacher), PinGenerate(user_id=colleague.id, target_role="teacher"))


def test_generate_pin_admin_pour_professeur(db, admin, teacher, as_caller):
    result = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=teacher.id, target_role="teacher"))
    assert db.get(OneTimePin, result.pin).user_id == teacher.id


def test_generate_pin_parent_pour_eleve_accepte(db, admin, student, as_caller):
    result = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=student.id, target_role="parent"))
    assert db.get(OneTimePin, result.pin).target_role == "parent"


def test_generate_pin_autre_entreprise(db, admin, make_profile, as_caller):
    other = Company(name="Autre école")
    db.add(other)
    db.commit()
    foreign = make_profile(other, Role.STUDENT)
    with pytest.raises(ResourceNotFoundError):
        pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=foreign.id, target_role="student"))


def test_generate_pin_collision(db, admin, student, as_caller):
    data = PinGenerate(user_id=student.id, target_role="student")
    with patch("app.services.pin_service.random_pin", return_value="123456"):
        pin_service.generate_pin(db, as_caller(admin), data)
        with pytest.raises(PinCollisionError):
            pin_service.generate_pin(db, as_caller(admin), data)


# --- Utilisation du PIN ---

def test_claim_pin_ouvre_une_session(db, issuer, admin, student, as_caller):
    pin = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=student.id, target_role="student")).pin
    session = pin_service.claim_pin(db, issuer, pin)

    assert session.user_id == student.id
    assert session.role == "student"
    assert session.token_type == "bearer"
    assert session.expires_in == 15 * 60
    assert issuer.decode_access_token(session.access_token).id == student.id

    stored = db.execute(select(ActiveRefreshToken)).scalar()
    assert stored.token_hash == issuer.hash_refresh_token(session.refresh_token)
    assert stored.token_hash != session.refresh_token


def test_claim_pin_usage_unique(db, issuer, admin, student, as_caller):
    pin = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=student.id, target_role="student")).pin
    pin_service.claim_pin(db, issuer, pin)
    with pytest.raises(AuthenticationError, match="invalide ou expiré"):
        pin_service.claim_pin(db, issuer, pin)


def test_claim_pin_inconnu(db, issuer):
    with pytest.raises(AuthenticationError, match="invalide ou expiré"):
        pin_service.claim_pin(db, issuer, "000000")


def test_claim_pin_expire(db, issuer, student):
    db.add(OneTimePin(
        pin="654321",
        user_id=student.id,
        target_role="student",
        company_id=student.company_id,
        expires_at=utcnow() - timedelta(seconds=1),
    ))
    db.commit()
    with pytest.raises(AuthenticationError, match="invalide ou expiré"):
        pin_service.claim_pin(db, issuer, "654321")
    assert session_count(db, student.id) == 0


def test_claim_pin_session_parent(db, issuer, admin, student, as_caller):
    pin = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=student.id, target_role="parent")).pin
    session = pin_service.claim_pin(db, issuer, pin)

    assert session.role == "parent"
    assert session.viewing_student_id == student.id
    caller = issuer.decode_access_token(session.access_token)
    assert caller.role == Role.PARENT
    assert caller.viewing_student_id == student.id


def test_purge_pins(db, issuer, admin, student, as_caller):
    used = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=student.id, target_role="student")).pin
    pin_service.claim_pin(db, issuer, used)
    fresh = pin_service.generate_pin(db, as_caller(admin), PinGenerate(user_id=student.id, target_role="student")).pin

    assert pin_service.purge_pins(db) == 1
    assert db.get(OneTimePin, fresh) is not None


# --- Rafraîchissement ---

def open_student_session(db, issuer, student):
    session = session_service.open_session(db, issuer, student, "student")
    db.commit()
    return session


def test_refresh_avec_rotation(db, issuer, student):
    session = open_student_session(db, issuer, student)
    result = session_service.refresh_session(db, issuer, session.refresh_token)

    assert result.user_id == student.id
    assert result.refresh_token is not None
    assert result.refresh_token != session.refresh_token
    with pytest.raises(AuthenticationError):
        session_service.refresh_session(db, issuer, session.refresh_token)
    assert session_count(db, student.id) == 1


def test_refresh_sans_rotation(db, student):
    issuer = TokenIssuer("secret", "HS256", 15, "sel", 30, rotate_refresh_tokens=False)
    session = open_student_session(db, issuer, student)
    result = session_service.refresh_session(db, issuer, session.refresh_token)
    assert result.refresh_token is None
    row = db.execute(select(ActiveRefreshToken)).scalar()
    assert row.last_used_at is not None
    session_service.refresh_session(db, issuer, session.refresh_token)


def test_refresh_inconnu(db, issuer):
    with pytest.raises(AuthenticationError):
        session_service.refresh_session(db, issuer, "inconnu")


def test_refresh_expire_supprime_la_ligne(db, issuer, student):
    session = open_student_session(db, issuer, student)
    row = db.execute(select(ActiveRefreshToken)).scalar()
    row.expires_at = utcnow() - timedelta(days=1)
    db.commit()
    with pytest.raises(AuthenticationError):
        session_service.refresh_session(db, issuer, session.refresh_token)
    assert session_count(db, student.id) == 0


def test_refresh_utilisateur_inactif(db, issuer, student):
    session = open_student_session(db, issuer, student)
    student.status = Status.INACTIVE.value
    db.commit()
    with pytest.raises(AuthenticationError):
        session_service.refresh_session(db, issuer, session.refresh_token)
    assert session_count(db, student.id) == 0


# --- Déconnexion forcée ---

def test_force_logout(db, issuer, admin, student, as_caller):
    open_student_session(db, issuer, student)
    open_student_session(db, issuer, student)
    result = session_service.force_logout(db, as_caller(admin), student.id)
    assert result.revoked_sessions == 2
    assert session_count(db, student.id) == 0


def test_force_logout_refuse_au_professeur(db, issuer, teacher, student, as_caller):
    open_student_session(db, issuer, student)
    with pytest.raises(AuthorizationError):
        session_service.force_logout(db, as_caller(teacher), student.id)
    assert session_count(db, student.id) == 1
