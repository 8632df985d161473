"""
Service du registre de tickets.

Le solde d'un élève est toujours recalculé : SUM(amount) sur ses transactions.
Toute écriture est une insertion, jamais une mise à jour.

Les débits (échange de récompense, retrait manuel) passent tous par
insert_debit : verrou sur la ligne profil de l'élève, puis insertion
conditionnelle en une seule instruction SQL, de sorte que deux débits
concurrents ne puissent jamais rendre le solde négatif.
"""

import uuid
import logging
from typing import Optional

from sqlalchemy import Integer, String, Text, Uuid, cast, func, insert, literal, select
from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError, InsufficientBalanceError
from app.models.ledger import TicketTransaction, TransactionType
from app.models.profile import Profile
from app.schemas.ticket import AdjustResponse, TicketAdjust, TransactionResponse
from app.services import authorization
from app.services.authorization import Caller
from app.services.tenancy import get_active_student, get_scoped

logger = logging.getLogger(__name__)


def _balance_query(student_id: uuid.UUID):
    return (
        select(func.coalesce(func.sum(TicketTransaction.amount), 0))
        .where(TicketTransaction.student_id == student_id)
    )


def get_balance(db: Session, student_id: uuid.UUID) -> int:
    """Solde courant = somme de toutes les transactions de l'élève."""
    return int(db.execute(_balance_query(student_id)).scalar() or 0)


def insert_credit(
    db: Session,
    student_id: uuid.UUID,
    company_id: uuid.UUID,
    amount: int,
    tx_type: TransactionType,
    source_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> TicketTransaction:
    """Ajoute une ligne de crédit (sans commit)."""
    transaction = TicketTransaction(
        student_id=student_id,
        company_id=company_id,
        amount=amount,
        type=tx_type.value,
        source_id=source_id,
        notes=notes,
    )
    db.add(transaction)
    db.flush()
    return transaction


def insert_debit(
    db: Session,
    student_id: uuid.UUID,
    company_id: uuid.UUID,
    amount: int,
    tx_type: TransactionType,
    source_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> Optional[uuid.UUID]:
    """
    Insère un débit (amount < 0) uniquement si solde + amount >= 0.
    Retourne l'id de la transaction créée, ou None si le solde est insuffisant.
    Ne commit pas : l'appelant valide ou annule la transaction.
    """
    # Sérialise les débits d'un même élève (verrou de ligne sous PostgreSQL)
    db.execute(select(Profile.id).where(Profile.id == student_id).with_for_update()).scalar()

    transaction_id = uuid.uuid4()
    balance = _balance_query(student_id).scalar_subquery()
    row = select(
        cast(literal(transaction_id, Uuid()), Uuid()),
        cast(literal(student_id, Uuid()), Uuid()),
        cast(literal(company_id, Uuid()), Uuid()),
        cast(literal(amount, Integer()), Integer()),
        cast(literal(tx_type.value, String()), String(30)),
        cast(literal(source_id, Uuid()), Uuid()),
        cast(literal(notes, Text()), Text()),
    ).where(balance + amount >= 0)

    result = db.execute(
        insert(TicketTransaction).from_select(
            ["id", "student_id", "company_id", "amount", "type", "source_id", "notes"],
            row,
        )
    )
    if result.rowcount != 1:
        return None
    return transaction_id


def adjust_tickets(db: Session, caller: Caller, data: TicketAdjust) -> AdjustResponse:
    """
    Ajustement manuel du solde d'un élève par un admin actif.

    - amount > 0 → manual_add
    - amount < 0 → manual_subtract, refusé si le solde deviendrait négatif
    """
    if not authorization.is_active_admin(db, caller.id):
        raise AuthorizationError(
            "Permission refusée : seuls les admins actifs peuvent ajuster les tickets."
        )
    student = get_active_student(db, data.student_id, caller.company_id)

    if data.amount > 0:
        transaction = insert_credit(
            db, student.id, caller.company_id, data.amount,
            TransactionType.MANUAL_ADD, source_id=caller.id, notes=data.notes,
        )
    else:
        transaction_id = insert_debit(
            db, student.id, caller.company_id, data.amount,
            TransactionType.MANUAL_SUBTRACT, source_id=caller.id, notes=data.notes,
        )
        if transaction_id is None:
            db.rollback()
            balance = get_balance(db, student.id)
            raise InsufficientBalanceError(
                f"Solde insuffisant. L'élève ne possède que {balance} tickets."
            )
        transaction = db.get(TicketTransaction, transaction_id)

    db.commit()
    db.refresh(transaction)
    new_balance = get_balance(db, student.id)

    logger.info(
        "Ajustement manuel de %+d tickets pour l'élève %s par l'admin %s (nouveau solde : %d)",
        data.amount, student.id, caller.id, new_balance,
    )
    return AdjustResponse(
        message=f"Tickets ajustés de {data.amount:+d}.",
        transaction=TransactionResponse.model_validate(transaction),
        new_balance=new_balance,
    )


def get_transactions(
    db: Session,
    caller: Caller,
    student_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[TicketTransaction]]:
    """Historique des transactions d'un élève, de la plus récente à la plus ancienne."""
    _require_view(db, caller, student_id)
    total = db.execute(
        select(func.count())
        .select_from(TicketTransaction)
        .where(TicketTransaction.student_id == student_id)
    ).scalar() or 0
    transactions = db.execute(
        select(TicketTransaction)
        .where(TicketTransaction.student_id == student_id)
        .order_by(TicketTransaction.timestamp.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return total, list(transactions)


def get_student_balance(db: Session, caller: Caller, student_id: uuid.UUID) -> int:
    _require_view(db, caller, student_id)
    return get_balance(db, student_id)


def _require_view(db: Session, caller: Caller, student_id: uuid.UUID) -> None:
    """Lecture autorisée à l'admin, au professeur lié, à l'élève et à ses parents."""
    get_scoped(db, Profile, student_id, caller.company_id, "Élève")
    if not authorization.can_view_student(db, caller, student_id):
        raise AuthorizationError("Permission refusée : vous ne pouvez pas consulter cet élève.")
