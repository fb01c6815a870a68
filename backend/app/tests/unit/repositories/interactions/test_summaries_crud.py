"""Test the compare-and-swap summary upsert."""

from tutor.repositories.interactions.crud.summaries_crud import CRUDSummaries
from tutor.repositories.interactions.schemas.summaries_schema import SummariesUpsert


def _summary(text: str, mark: int) -> SummariesUpsert:
    return SummariesUpsert(session_id="class-3:minji", summary=text, last_msg_id=mark)


def test_first_upsert_inserts(db) -> None:
    crud = CRUDSummaries()

    assert crud.upsert(db, _summary("- 첫 요약", 19), expected_last_msg_id=None)

    stored = crud.get(db, "class-3:minji")
    assert stored.summary == "- 첫 요약"
    assert stored.last_msg_id == 19


def test_insert_loses_when_a_summary_already_exists(db) -> None:
    crud = CRUDSummaries()
    crud.upsert(db, _summary("- 첫 요약", 19), expected_last_msg_id=None)

    assert not crud.upsert(db, _summary("- 경쟁 요약", 25), expected_last_msg_id=None)
    assert crud.get(db, "class-3:minji").summary == "- 첫 요약"


def test_update_replaces_text_when_mark_matches(db) -> None:
    crud = CRUDSummaries()
    crud.upsert(db, _summary("- 첫 요약", 19), expected_last_msg_id=None)

    assert crud.upsert(db, _summary("- 새 요약", 37), expected_last_msg_id=19)

    stored = crud.get(db, "class-3:minji")
    assert stored.summary == "- 새 요약"
    assert stored.last_msg_id == 37


def test_update_loses_on_stale_expected_mark(db) -> None:
    crud = CRUDSummaries()
    crud.upsert(db, _summary("- 첫 요약", 19), expected_last_msg_id=None)
    crud.upsert(db, _summary("- 둘째 요약", 37), expected_last_msg_id=19)

    assert not crud.upsert(db, _summary("- 늦은 요약", 30), expected_last_msg_id=19)
    assert crud.get(db, "class-3:minji").last_msg_id == 37


def test_mark_never_moves_backwards(db) -> None:
    crud = CRUDSummaries()
    crud.upsert(db, _summary("- 첫 요약", 19), expected_last_msg_id=None)

    assert not crud.upsert(db, _summary("- 뒤로", 10), expected_last_msg_id=19)
    assert crud.get(db, "class-3:minji").last_msg_id == 19
