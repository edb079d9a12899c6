"""/v1/users - Sign-in (find-or-create), profile read and profile edits"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import UserCreate, UserDocument, UserUpdate
from budgetly.api.v1.ledger_ops import load_user_ledger, raise_http
from budgetly.api.dependencies import get_request_id
from budgetly.infrastructure.database.session import get_db
from budgetly.infrastructure.database.repositories import UserRepository
from budgetly.infrastructure.observability.metrics import record_ledger_write

router = APIRouter()


@router.post("/users", response_model=UserDocument)
def sign_in(request_body: UserCreate, request: Request, db: Session = Depends(get_db)):
    """
    Return the user for ``uid``, registering them on first sign-in.

    An existing user is returned as stored; the profile fields in the body
    only seed new users.
    """
    request_id = get_request_id(request)
    repo = UserRepository(db)

    try:
        user = repo.find_or_create(
            uid=request_body.uid,
            email=request_body.email,
            name=request_body.name,
            photo_url=request_body.photo_url,
            location=request_body.location,
            occupation=request_body.occupation,
        )
        db.commit()
    except Exception as e:
        db.rollback()
        raise_http(e, request_id)

    return UserDocument.from_domain(repo.to_domain(user))


@router.get("/users/{uid}", response_model=UserDocument)
def get_user(uid: str, request: Request, db: Session = Depends(get_db)):
    """Full user document including every month of the ledger"""
    user, ledger = load_user_ledger(db, uid, get_request_id(request))
    return UserDocument.from_domain(UserRepository(db).to_domain(user, ledger))


@router.put("/users/{uid}", response_model=UserDocument)
def update_user(uid: str, request_body: UserUpdate, request: Request, db: Session = Depends(get_db)):
    """Edit profile fields; omitted fields are left unchanged"""
    request_id = get_request_id(request)
    repo = UserRepository(db)

    try:
        user = repo.require(uid)
        repo.update_profile(user, **request_body.model_dump(exclude_none=True))
        db.commit()
    except Exception as e:
        db.rollback()
        raise_http(e, request_id)

    record_ledger_write("profile_update")
    return UserDocument.from_domain(repo.to_domain(user))
