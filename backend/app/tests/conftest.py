"""Shared fixtures: in-memory SQLite stores and a scripted completion gateway."""

from typing import Callable, List, Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tutor.agents.llm.base_llm import BaseLLM
from tutor.repositories.interactions import models  # noqa: F401
from tutor.repositories.interactions.crud.conversations_crud import CRUDConversations
from tutor.repositories.interactions.crud.messages_crud import CRUDMessages
from tutor.repositories.interactions.crud.summaries_crud import CRUDSummaries
from tutor.repositories.interactions.database import Base
from tutor.services.interactions.conversations_services import ConversationService
from tutor.services.interactions.messages_services import MessageService
from tutor.services.interactions.summaries_services import SummaryService


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def messages_service() -> MessageService:
    return MessageService(CRUDMessages())


@pytest.fixture()
def summaries_service() -> SummaryService:
    return SummaryService(CRUDSummaries())


@pytest.fixture()
def conversations_service() -> ConversationService:
    return ConversationService(CRUDConversations())


@pytest.fixture()
def llm() -> MagicMock:
    gateway = MagicMock(spec=BaseLLM)
    gateway.complete.return_value = "- 학생은 골든벨 게임을 만들고 있다."
    return gateway


@pytest.fixture()
def seed_conversation(
    db: Session,
    conversations_service: ConversationService,
    messages_service: MessageService,
) -> Callable[..., List[int]]:
    """Create a conversation with `count` alternating user/assistant messages."""

    def _seed(
        session_id: str = "class-3:minji",
        count: int = 0,
        owner: Optional[str] = None,
        start: int = 1,
    ) -> List[int]:
        if conversations_service.get(db, session_id) is None:
            conversations_service.upsert(db, session_id, owner)
        ids = []
        for i in range(start, start + count):
            role = "user" if i % 2 else "assistant"
            ids.append(messages_service.append(db, session_id, role, f"message {i}"))
        return ids

    return _seed
