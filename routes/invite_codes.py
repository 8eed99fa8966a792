# routes/invite_codes.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.user import Users
from schema.auth import InviteCodeIn, InviteValidateOut
from schema.base import SuccessOut
from src.invites import find_invite, invite_problem, require_valid_invite, redeem_invite

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/validate", response_model=InviteValidateOut, openapi_extra={"security": []})
def validate_code(body: InviteCodeIn, db: Session = Depends(get_db)):
    invite = find_invite(db, body.code)
    problem = invite_problem(invite)
    if problem:
        return InviteValidateOut(valid=False, message=problem)
    return InviteValidateOut(valid=True, code=invite.code)


@router.post(
    "/use",
    response_model=SuccessOut,
    responses={400: {"description": "Bad Request - Invite code rejected"}},
)
def use_code(body: InviteCodeIn, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    invite = require_valid_invite(db, body.code)
    redeem_invite(invite, user)
    db.commit()
    return SuccessOut()
