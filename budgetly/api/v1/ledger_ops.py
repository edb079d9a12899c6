"""Shared flow for ledger-mutating endpoints"""

import time
import logging
from typing import Callable, List, NoReturn, Optional, Tuple
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import UserDocument
from budgetly.infrastructure.database.models import BudgetUser
from budgetly.infrastructure.database.repositories import UserRepository
from budgetly.domain.exceptions import (
    AdvisorAPIError,
    EmiConflictError,
    EntryNotFoundError,
    LedgerValidationError,
    UserNotFoundError,
)
from budgetly.domain.models import Ledger
from budgetly.infrastructure.observability.metrics import record_ledger_write
from budgetly.infrastructure.observability.logging import log_ledger_write

logger = logging.getLogger(__name__)


def raise_http(error: Exception, request_id: str) -> NoReturn:
    """Translate an error raised while handling a request into the matching HTTP error"""
    if isinstance(error, (UserNotFoundError, EntryNotFoundError)):
        logger.info(f"Not found: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, LedgerValidationError):
        logger.warning(f"Validation failed: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(error))
    if isinstance(error, EmiConflictError):
        logger.warning(f"EMI conflict: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(error))
    if isinstance(error, IntegrityError):
        logger.warning(f"Integrity error: {error.orig}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Conflicting record")
    if isinstance(error, AdvisorAPIError):
        logger.error(f"Advisor API error: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Advisor service unavailable")

    logger.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    raise HTTPException(status_code=500, detail="Internal server error")


def commit_ledger_change(
    db: Session,
    uid: str,
    operation: str,
    request_id: str,
    change: Callable[[Ledger], Ledger],
    on_commit: Optional[Callable[[List[str]], None]] = None,
) -> UserDocument:
    """
    Apply a pure ledger change for one user and persist it atomically.

    Flow:
    1. Load the user's current ledger
    2. Compute the new ledger (validation happens here, before any write)
    3. Write every changed month and commit once
    4. Return the full updated user document
    """
    start_time = time.time()

    try:
        repo = UserRepository(db)
        user = repo.require(uid)
        before = repo.load_ledger(user)
        after = change(before)

        months = repo.save_ledger(user, before, after)
        db.commit()

    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        raise_http(e, request_id)

    duration_ms = (time.time() - start_time) * 1000
    record_ledger_write(operation)
    log_ledger_write(request_id, uid, operation, months, duration_ms)
    if on_commit is not None:
        on_commit(months)

    return UserDocument.from_domain(repo.to_domain(user, after))


def load_user_ledger(db: Session, uid: str, request_id: str) -> Tuple[BudgetUser, Ledger]:
    """Fetch a user and their ledger for read-only endpoints"""
    repo = UserRepository(db)
    try:
        user = repo.require(uid)
    except UserNotFoundError as e:
        raise_http(e, request_id)
    return user, repo.load_ledger(user)
