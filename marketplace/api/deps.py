from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from marketplace.db.session import SessionLocal
from marketplace.db.store import BusinessStore
from marketplace.core.config import get_settings
from marketplace.core.tokens import CapabilityTokenCodec
from marketplace.core.approval import ApprovalOrchestrator
from marketplace.services.notifications import ApprovalNotifier


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> BusinessStore:
    return BusinessStore(db)


def get_token_codec(request: Request) -> CapabilityTokenCodec:
    """Codec built at startup; built lazily if the app started without lifespan."""
    codec = getattr(request.app.state, "token_codec", None)
    if codec is None:
        codec = CapabilityTokenCodec.from_settings(get_settings())
        request.app.state.token_codec = codec
    return codec


def get_notifier() -> ApprovalNotifier:
    return ApprovalNotifier(get_settings())


def get_orchestrator(
    store: BusinessStore = Depends(get_store),
    codec: CapabilityTokenCodec = Depends(get_token_codec),
    notifier: ApprovalNotifier = Depends(get_notifier),
) -> ApprovalOrchestrator:
    return ApprovalOrchestrator(store, codec, notifier)
