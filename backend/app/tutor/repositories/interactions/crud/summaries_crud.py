"""
CRUD operations for conversation summaries.

Summaries are only ever replaced wholesale. The upsert is a compare-and-swap
on the high-water mark (`last_msg_id`) so two compactions racing on the same
conversation cannot both commit overlapping cutoffs.
"""

from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from tutor.repositories.interactions.models.summaries_model import Summaries
from tutor.repositories.interactions.schemas.summaries_schema import SummariesUpsert


class CRUDSummaries:
    """Repository class for handling database operations related to summaries."""

    def __init__(self) -> None:
        """Init class."""
        pass

    def get(self, db: Session, session_id: str) -> Optional[Summaries]:
        """
        Retrieve the summary of a conversation.

        Args:
            db (Session): The database session.
            session_id (str): ID of the conversation.

        Returns:
            Optional[Summaries]: The summary if the conversation was ever compacted.
        """
        return db.query(Summaries).filter(Summaries.session_id == session_id).first()

    def upsert(
        self,
        db: Session,
        summary_in: SummariesUpsert,
        expected_last_msg_id: Optional[int],
    ) -> bool:
        """Replace the summary if its high-water mark still equals `expected_last_msg_id`.

        Args:
            db (Session): The database session.
            summary_in (SummariesUpsert): New summary text and high-water mark.
            expected_last_msg_id (Optional[int]): Mark read before summarizing,
                None when the conversation had no summary yet.

        Returns:
            bool: True when the row was written, False when another writer won
            or the new mark would not move forward.
        """
        if expected_last_msg_id is None:
            if self.get(db, summary_in.session_id) is not None:
                return False
            db.add(Summaries(**summary_in.model_dump()))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                return False
            return True

        if summary_in.last_msg_id <= expected_last_msg_id:
            return False

        updated: int = (
            db.query(Summaries)
            .filter(
                Summaries.session_id == summary_in.session_id,
                Summaries.last_msg_id == expected_last_msg_id,
            )
            .update(
                {
                    Summaries.summary: summary_in.summary,
                    Summaries.last_msg_id: summary_in.last_msg_id,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated == 1
