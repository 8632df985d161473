"""
Tests de la gestion des utilisateurs : création avec liaisons, mise à jour
champ par champ, suppression en cascade, bascule de statut.
"""

import uuid

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select

from app.config import settings
from app.exceptions import AuthorizationError, ResourceNotFoundError, StateConflictError, ValidationError
from app.models.company import Company
from app.models.ledger import Reward, TicketTransaction
from app.models.links import Instrument
from app.models.profile import Profile, Role
from app.models.task import AssignedTask
from app.schemas.task import TaskAssign
from app.schemas.ticket import TicketAdjust
from app.schemas.user import UserCreate, UserUpdate, UserUpdateFields
from app.services import authorization, ledger_service, redemption_service, task_service, user_service


def make_instrument(db, company, name="Violon"):
    instrument = Instrument(company_id=company.id, name=name)
    db.add(instrument)
    db.commit()
    return instrument


# --- Schémas ---

def test_create_liaisons_incoherentes_avec_le_role():
    with pytest.raises(SchemaValidationError):
        UserCreate(role="teacher", first_name="A", last_name="B", linked_student_ids=[uuid.uuid4()])
    with pytest.raises(SchemaValidationError):
        UserCreate(role="parent", first_name="A", last_name="B", instrument_ids=[uuid.uuid4()])


def test_update_role_interdit():
    with pytest.raises(SchemaValidationError):
        UserUpdateFields(role="admin")


def test_create_nom_vide_rejete():
    with pytest.raises(SchemaValidationError):
        UserCreate(role="student", first_name="  ", last_name="B")


# --- Création ---

def test_create_eleve_avec_liaisons(db, company, admin, teacher, as_caller):
    violin = make_instrument(db, company)
    result = user_service.create_user(db, as_caller(admin), UserCreate(
        role="student",
        first_name=" Léa ",
        last_name="Durand",
        instrument_ids=[violin.id],
        linked_teacher_ids=[teacher.id],
    ))
    assert result.role == "student"
    assert result.status == "active"
    assert result.first_name == "Léa"
    assert result.company_id == company.id
    assert result.instrument_ids == [violin.id]
    assert result.linked_teacher_ids == [teacher.id]
    assert authorization.is_teacher_linked(db, teacher.id, result.id)


def test_create_parent_avec_eleves(db, admin, student, as_caller):
    result = user_service.create_user(db, as_caller(admin), UserCreate(
        role="parent", first_name="Marc", last_name="Durand", linked_student_ids=[student.id],
    ))
    assert result.linked_student_ids == [student.id]
    assert authorization.is_parent_of_student(db, result.id, student.id)


def test_create_liaison_mauvais_role(db, admin, student, as_caller):
    """Un élève passé comme professeur est rejeté."""
    with pytest.raises(ValidationError):
        user_service.create_user(db, as_caller(admin), UserCreate(
            role="student", first_name="Léa", last_name="Durand", linked_teacher_ids=[student.id],
        ))


def test_create_liaison_autre_entreprise(db, admin, make_profile, as_caller):
    other = Company(name="Autre école")
    db.add(other)
    db.commit()
    foreign_teacher = make_profile(other, Role.TEACHER)
    with pytest.raises(ValidationError):
        user_service.create_user(db, as_caller(admin), UserCreate(
            role="student", first_name="Léa", last_name="Durand", linked_teacher_ids=[foreign_teacher.id],
        ))


def test_create_refuse_au_professeur(db, teacher, as_caller):
    with pytest.raises(AuthorizationError):
        user_service.create_user(db, as_caller(teacher), UserCreate(role="student", first_name="A", last_name="B"))


# --- Mise à jour ---

def update(user, **fields):
    return UserUpdate(user_id=user.id, updates=UserUpdateFields(**fields))


def test_update_son_propre_profil(db, student, as_caller):
    result = user_service.update_user(db, as_caller(student), update(student, nickname="Mimi"))
    assert result.nickname == "Mimi"


def test_update_profil_d_un_autre_refuse(db, company, student, make_profile, as_caller):
    other = make_profile(company, Role.STUDENT, first_name="Léo")
    with pytest.raises(AuthorizationError):
        user_service.update_user(db, as_caller(other), update(student, nickname="Mimi"))


def test_update_instruments_par_professeur_lie(db, company, teacher, student, link, as_caller):
    link(teacher, student)
    cello = make_instrument(db, company, "Violoncelle")
    result = user_service.update_user(db, as_caller(teacher), update(student, instrument_ids=[cello.id]))
    assert result.instrument_ids == [cello.id]


def test_update_instruments_par_eleve_refuse(db, company, student, as_caller):
    cello = make_instrument(db, company, "Violoncelle")
    with pytest.raises(AuthorizationError):
        user_service.update_user(db, as_caller(student), update(student, instrument_ids=[cello.id]))


def test_update_professeurs_reserve_a_l_admin(db, company, admin, teacher, student, make_profile, link, as_caller):
    link(teacher, student)
    other_teacher = make_profile(company, Role.TEACHER, first_name="Nina")
    with pytest.raises(AuthorizationError):
        user_service.update_user(db, as_caller(teacher), update(student, linked_teacher_ids=[other_teacher.id]))

    result = user_service.update_user(db, as_caller(admin), update(student, linked_teacher_ids=[other_teacher.id]))
    assert result.linked_teacher_ids == [other_teacher.id]
    assert not authorization.is_teacher_linked(db, teacher.id, student.id)


def test_update_permissions_verifiees_avant_ecriture(db, company, teacher, student, link, as_caller):
    """Profil autorisé + liaisons interdites : rien n'est modifié."""
    link(teacher, student)
    with pytest.raises(AuthorizationError):
        user_service.update_user(
            db, as_caller(teacher), update(student, nickname="Nouveau", linked_teacher_ids=[])
        )
    db.expire_all()
    assert db.get(Profile, student.id).nickname is None


def test_update_eleves_d_un_eleve_rejete(db, admin, student, as_caller):
    with pytest.raises(ValidationError):
        user_service.update_user(db, as_caller(admin), update(student, linked_student_ids=[]))


def test_update_vide_rejete(db, admin, student, as_caller):
    with pytest.raises(ValidationError):
        user_service.update_user(db, as_caller(admin), UserUpdate(user_id=student.id, updates=UserUpdateFields()))


# --- Suppression et statut ---

def test_delete_en_cascade(db, admin, student, credit, as_caller):
    credit(student, 5)
    db.add(AssignedTask(student_id=student.id, company_id=student.company_id, task_title="Gammes", task_base_points=3))
    db.commit()
    student_id = student.id

    user_service.delete_user(db, as_caller(admin), student_id)
    db.expire_all()
    assert db.get(Profile, student_id) is None
    for model in (TicketTransaction, AssignedTask):
        remaining = db.execute(
            select(func.count()).select_from(model).where(model.student_id == student_id)
        ).scalar()
        assert remaining == 0


def test_delete_soi_meme_refuse(db, admin, as_caller):
    with pytest.raises(StateConflictError):
        user_service.delete_user(db, as_caller(admin), admin.id)


def test_delete_admin_protege(db, company, admin, make_profile, as_caller, monkeypatch):
    protected = make_profile(company, Role.ADMIN, first_name="Fondateur")
    monkeypatch.setattr(settings, "PROTECTED_ADMIN_IDS", f"{uuid.uuid4()}, {protected.id}")
    with pytest.raises(StateConflictError, match="protégé"):
        user_service.delete_user(db, as_caller(admin), protected.id)
    with pytest.raises(StateConflictError, match="protégé"):
        user_service.toggle_status(db, as_caller(admin), protected.id)


def test_delete_autre_entreprise(db, admin, make_profile, as_caller):
    other = Company(name="Autre école")
    db.add(other)
    db.commit()
    foreign = make_profile(other, Role.STUDENT)
    with pytest.raises(ResourceNotFoundError):
        user_service.delete_user(db, as_caller(admin), foreign.id)


def test_toggle_status_aller_retour(db, admin, student, as_caller):
    assert user_service.toggle_status(db, as_caller(admin), student.id).status == "inactive"
    assert authorization.active_role(db, student.id) is None
    assert user_service.toggle_status(db, as_caller(admin), student.id).status == "active"


def test_toggle_status_refuse_au_professeur(db, teacher, student, link, as_caller):
    link(teacher, student)
    with pytest.raises(AuthorizationError):
        user_service.toggle_status(db, as_caller(teacher), student.id)


def test_eleve_desactive_bloque_ajustement_echange_assignation(db, company, admin, student, credit, as_caller):
    """Un élève actif, désactivé en cours de route : plus aucune opération ne le vise."""
    credit(student, 100)
    reward = Reward(company_id=company.id, name="Partition", cost=10)
    db.add(reward)
    db.commit()
    caller = as_caller(admin)
    ledger_service.adjust_tickets(db, caller, TicketAdjust(student_id=student.id, amount=5, notes="Bonus"))

    user_service.toggle_status(db, caller, student.id)

    with pytest.raises(StateConflictError):
        ledger_service.adjust_tickets(db, caller, TicketAdjust(student_id=student.id, amount=5, notes="Bonus"))
    with pytest.raises(StateConflictError):
        redemption_service.redeem_reward(db, caller, student.id, reward.id)
    with pytest.raises(StateConflictError):
        task_service.assign_task(
            db, caller, TaskAssign(student_id=student.id, task_title="Gammes", task_base_points=3)
        )
    assert ledger_service.get_balance(db, student.id) == 105
    tasks = db.execute(
        select(func.count()).select_from(AssignedTask).where(AssignedTask.student_id == student.id)
    ).scalar()
    assert tasks == 0
