"""Trading signals: admins publish, users read by subscription tier."""

import logging
from typing import List, Optional

from fastapi import APIRouter, status

from database import SIGNALS, create_document, created_after, get_document, get_documents, get_emails
from errors import InvalidEnumError
from schemas import SIGNAL_TYPES, Signal, SignalCreate, SignalOut, UserRef
from security import AdminUser, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/signals", tags=["signals"])


def to_public(doc: dict, emails: dict) -> SignalOut:
    creator = doc.get("created_by")
    return SignalOut(
        id=str(doc["_id"]),
        title=doc.get("title"),
        description=doc.get("description"),
        type=doc["type"],
        created_by=UserRef(id=creator, email=emails[creator]) if creator in emails else None,
        created_at=doc["created_at"],
    )


@router.post("", response_model=SignalOut, status_code=status.HTTP_201_CREATED)
def create_signal(req: SignalCreate, user: AdminUser):
    if req.type not in SIGNAL_TYPES:
        raise InvalidEnumError("Invalid signal type")

    uid = str(user["_id"])
    signal = Signal(title=req.title, description=req.description, type=req.type, created_by=uid)
    sid = create_document(SIGNALS, signal)
    logger.info("Signal %s (%s) created by %s", sid, req.type, uid)
    return to_public(get_document(SIGNALS, sid), {uid: user["email"]})


@router.get("", response_model=List[SignalOut])
def list_signals(user: CurrentUser, since: Optional[str] = None):
    # Non-premium users only ever see free signals
    query = {} if user.get("is_premium") else {"type": "free"}
    try:
        query.update(created_after(since))
    except ValueError:
        logger.info("Ignoring signals request with unparsable since")
        return []

    signals = get_documents(SIGNALS, query, newest_first=True)
    emails = get_emails(s["created_by"] for s in signals if s.get("created_by"))
    return [to_public(s, emails) for s in signals]
