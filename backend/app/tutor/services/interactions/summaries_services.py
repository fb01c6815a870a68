"""This module provides the SummaryService class, the summary store used by the tutor core."""

from sqlalchemy.orm import Session
from typing import Optional
from fastapi import Depends

from tutor.repositories.interactions.crud.summaries_crud import CRUDSummaries
from tutor.repositories.interactions.models.summaries_model import Summaries
from tutor.repositories.interactions.schemas.summaries_schema import SummariesUpsert
from tutor.services.interactions.store_guard import store_operation


class SummaryService:
    """Service layer for the one-summary-per-conversation store."""

    def __init__(self, summary_repository: CRUDSummaries):
        """
        Initialize the SummaryService with a CRUD repository.

        Args:
            summary_repository (CRUDSummaries): Repository for summary database operations.
        """
        self.summary_repository = summary_repository

    def get(self, db: Session, session_id: str) -> Optional[Summaries]:
        """
        Retrieve the current summary of a conversation.

        Args:
            db (Session): The database session.
            session_id (str): ID of the conversation.

        Returns:
            Optional[Summaries]: The summary, or None for a conversation never compacted.
        """
        with store_operation(db, "get_summary"):
            return self.summary_repository.get(db, session_id)

    def upsert(
        self,
        db: Session,
        session_id: str,
        summary: str,
        high_water_mark: int,
        expected_high_water_mark: Optional[int] = None,
    ) -> bool:
        """
        Replace the summary text and move the high-water mark forward.

        Args:
            db (Session): The database session.
            session_id (str): ID of the conversation.
            summary (str): New summary text.
            high_water_mark (int): Id of the last message folded into `summary`.
            expected_high_water_mark (Optional[int]): The mark the caller read
                before summarizing; None if there was no summary.

        Returns:
            bool: False if a concurrent writer moved the mark first.
        """
        summary_in = SummariesUpsert(
            session_id=session_id, summary=summary, last_msg_id=high_water_mark
        )
        with store_operation(db, "upsert_summary"):
            return self.summary_repository.upsert(
                db, summary_in, expected_high_water_mark
            )


# Dependency for FastAPI
def get_summaries_service(
    summary_repository: CRUDSummaries = Depends(),
) -> SummaryService:
    """Retrieve an instance of SummaryService with the provided repository."""
    return SummaryService(summary_repository)
