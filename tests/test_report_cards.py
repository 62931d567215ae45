from decimal import Decimal
from typing import Dict

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.report_cards import batch, service
from academics.api.v1.report_cards.schemas import ReportRemarksUpdate
from academics.core.exceptions import NoMatchingScale, NoResultsForTerm, NotFoundError
from academics.core.models import GradingScale, ReportCard, SubjectResult

from conftest import add_results, add_student


async def _report_card_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(ReportCard.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_generate_scenario_85_75(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    student_id = await add_student(db_session, school["class_id"], "Ada", "Obi", "ADM001")
    await add_results(db_session, student_id, school["term_id"], {subjects["maths"]: "85", subjects["english"]: "75"})

    card = await service.generate_report_card(db_session, student_id, school["term_id"])

    assert card.total_score == Decimal("160.00")
    assert card.average_score == Decimal("80.00")
    grades = {line.subject_name: line.grade for line in card.results}
    assert grades == {"Mathematics": "A", "English": "B"}
    assert card.gpa == Decimal("3.50")
    assert card.class_position == 1
    assert card.total_students == 1
    assert card.student_name == "Ada Obi"
    assert card.class_id == school["class_id"]


@pytest.mark.asyncio
async def test_no_results_fails_with_no_results_for_term(db_session: AsyncSession, school: Dict) -> None:
    student_id = await add_student(db_session, school["class_id"], "Bayo", "Ade", "ADM002")

    with pytest.raises(NoResultsForTerm):
        await service.generate_report_card(db_session, student_id, school["term_id"])
    assert await _report_card_count(db_session) == 0


@pytest.mark.asyncio
async def test_unknown_student_is_not_found(db_session: AsyncSession, school: Dict) -> None:
    import uuid

    with pytest.raises(NotFoundError):
        await service.generate_report_card(db_session, uuid.uuid4(), school["term_id"])


@pytest.mark.asyncio
async def test_ungradeable_subject_fails_whole_report(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    student_id = await add_student(db_session, school["class_id"], "Chi", "Eze", "ADM003")
    # 45 is below the lowest configured band
    await add_results(db_session, student_id, school["term_id"], {subjects["maths"]: "90", subjects["english"]: "45"})

    with pytest.raises(NoMatchingScale):
        await service.generate_report_card(db_session, student_id, school["term_id"])
    assert await _report_card_count(db_session) == 0


@pytest.mark.asyncio
async def test_regeneration_is_stable_and_upserts(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    student_id = await add_student(db_session, school["class_id"], "Dayo", "Fash", "ADM004")
    await add_results(
        db_session,
        student_id,
        school["term_id"],
        {subjects["maths"]: "66.67", subjects["english"]: "71.5", subjects["science"]: "80"},
    )

    first = await service.generate_report_card(db_session, student_id, school["term_id"])
    second = await service.generate_report_card(db_session, student_id, school["term_id"])

    assert first.id == second.id
    assert (first.total_score, first.average_score, first.gpa, first.class_position, first.total_students) == (
        second.total_score,
        second.average_score,
        second.gpa,
        second.class_position,
        second.total_students,
    )
    # 218.17 / 3 = 72.7233...
    assert second.average_score == Decimal("72.72")
    assert await _report_card_count(db_session) == 1


@pytest.mark.asyncio
async def test_regeneration_picks_up_changed_scores(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    student_id = await add_student(db_session, school["class_id"], "Efe", "Gold", "ADM005")
    await add_results(db_session, student_id, term_id, {subjects["maths"]: "85", subjects["english"]: "75"})
    await service.generate_report_card(db_session, student_id, term_id)

    await db_session.execute(
        update(SubjectResult)
        .where(SubjectResult.student_id == student_id, SubjectResult.subject_id == subjects["english"])
        .values(total_score=Decimal("65"))
    )
    await db_session.commit()
    db_session.expire_all()

    card = await service.generate_report_card(db_session, student_id, term_id)
    assert card.average_score == Decimal("75.00")
    assert {line.subject_name: line.grade for line in card.results} == {"Mathematics": "A", "English": "C"}
    assert len(card.results) == 2


@pytest.mark.asyncio
async def test_remarks_survive_regeneration(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    student_id = await add_student(db_session, school["class_id"], "Femi", "Hart", "ADM006")
    await add_results(db_session, student_id, term_id, {subjects["maths"]: "88"})
    await service.generate_report_card(db_session, student_id, term_id)

    await service.update_report_remarks(
        db_session,
        ReportRemarksUpdate(
            student_id=student_id,
            term_id=term_id,
            class_teacher_remark="Consistent effort",
            principal_remark="Well done",
        ),
    )
    # Only the principal remark changes here
    await service.update_report_remarks(
        db_session,
        ReportRemarksUpdate(student_id=student_id, term_id=term_id, principal_remark="Keep it up"),
    )

    card = await service.generate_report_card(db_session, student_id, term_id)
    assert card.class_teacher_remark == "Consistent effort"
    assert card.principal_remark == "Keep it up"


@pytest.mark.asyncio
async def test_remarks_require_generated_report(db_session: AsyncSession, school: Dict) -> None:
    student_id = await add_student(db_session, school["class_id"], "Gbenga", "Ige", "ADM007")
    with pytest.raises(NotFoundError):
        await service.update_report_remarks(
            db_session,
            ReportRemarksUpdate(student_id=student_id, term_id=school["term_id"], class_teacher_remark="Hi"),
        )


@pytest.mark.asyncio
async def test_class_batch_ranks_ties_1_1_3(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    class_id = school["class_id"]
    first = await add_student(db_session, class_id, "Amaka", "Nwosu", "ADM010")
    second = await add_student(db_session, class_id, "Bola", "Okoro", "ADM011")
    third = await add_student(db_session, class_id, "Chidi", "Peters", "ADM012")
    await add_results(db_session, first, term_id, {subjects["maths"]: "74", subjects["english"]: "70"})
    await add_results(db_session, second, term_id, {subjects["maths"]: "72", subjects["english"]: "72"})
    # Chidi's 55 cannot be graded; ranking still counts him
    await add_results(db_session, third, term_id, {subjects["maths"]: "65", subjects["english"]: "62"})
    await add_results(db_session, third, term_id, {subjects["science"]: "38"})

    outcome = await batch.generate_class_reports(db_session, class_id, term_id)
    assert outcome.count == 2
    assert [f.student_id for f in outcome.failures] == [third]

    reports = await service.get_class_reports(db_session, class_id, term_id)
    positions = {r.student_id: (r.class_position, r.total_students) for r in reports}
    assert positions == {first: (1, 3), second: (1, 3)}


@pytest.mark.asyncio
async def test_class_batch_tie_then_third_place(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    class_id = school["class_id"]
    ids = []
    for idx, score in enumerate(["72", "72", "60"]):
        sid = await add_student(db_session, class_id, f"S{idx}", f"Student{idx}", f"ADM02{idx}")
        await add_results(db_session, sid, term_id, {subjects["maths"]: score})
        ids.append(sid)

    outcome = await batch.generate_class_reports(db_session, class_id, term_id)
    assert outcome.count == 3
    assert outcome.failures == []

    reports = await service.get_class_reports(db_session, class_id, term_id)
    assert [r.class_position for r in reports] == [1, 1, 3]
    assert {r.student_id: r.class_position for r in reports}[ids[2]] == 3


@pytest.mark.asyncio
async def test_class_batch_continues_past_missing_results(db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    class_id = school["class_id"]
    graded = await add_student(db_session, class_id, "Ify", "Jones", "ADM030")
    missing = await add_student(db_session, class_id, "Jide", "Kalu", "ADM031")
    await add_student(db_session, class_id, "Kemi", "Lawal", "ADM032", status="LEFT")
    await add_results(db_session, graded, term_id, {subjects["maths"]: "81"})

    outcome = await batch.generate_class_reports(db_session, class_id, term_id)

    assert outcome.count == 1
    assert len(outcome.failures) == 1
    assert outcome.failures[0].student_id == missing
    assert "No subject results" in outcome.failures[0].error
    assert await _report_card_count(db_session) == 1


@pytest.mark.asyncio
async def test_class_batch_without_grading_scales_is_rejected(db_session: AsyncSession, school: Dict) -> None:
    from sqlalchemy import delete

    from academics.core.exceptions import ValidationError

    student_id = await add_student(db_session, school["class_id"], "Lola", "Mba", "ADM040")
    await add_results(db_session, student_id, school["term_id"], {school["subjects"]["maths"]: "81"})
    await db_session.execute(delete(GradingScale))
    await db_session.commit()

    with pytest.raises(ValidationError):
        await batch.generate_class_reports(db_session, school["class_id"], school["term_id"])


@pytest.mark.asyncio
async def test_generate_endpoint_and_fetch(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    student_id = await add_student(db_session, school["class_id"], "Musa", "Nnaji", "ADM050")
    await add_results(db_session, student_id, term_id, {subjects["maths"]: "85", subjects["english"]: "75"})

    response = await client.post(
        "/api/v1/report-cards/generate",
        json={"student_id": str(student_id), "term_id": str(term_id)},
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert Decimal(str(data["average_score"])) == Decimal("80.00")
    assert {r["subject_name"]: r["grade"] for r in data["results"]} == {"English": "B", "Mathematics": "A"}

    remarks = await client.put(
        "/api/v1/report-cards/remarks",
        json={"student_id": str(student_id), "term_id": str(term_id), "class_teacher_remark": "Bright"},
    )
    assert remarks.status_code == 200
    assert remarks.json()["class_teacher_remark"] == "Bright"

    fetched = await client.get(
        "/api/v1/report-cards/student",
        params={"student_id": str(student_id), "term_id": str(term_id)},
    )
    assert fetched.status_code == 200
    assert fetched.json()["class_teacher_remark"] == "Bright"

    listed = await client.get(
        "/api/v1/report-cards/class",
        params={"class_id": str(school["class_id"]), "term_id": str(term_id)},
    )
    assert listed.status_code == 200
    assert [r["student_id"] for r in listed.json()] == [str(student_id)]


@pytest.mark.asyncio
async def test_generate_endpoint_reports_not_yet_gradeable(
    client: AsyncClient, db_session: AsyncSession, school: Dict
) -> None:
    student_id = await add_student(db_session, school["class_id"], "Ngozi", "Obi", "ADM051")
    response = await client.post(
        "/api/v1/report-cards/generate",
        json={"student_id": str(student_id), "term_id": str(school["term_id"])},
    )
    assert response.status_code == 422
    assert "No subject results" in response.json()["detail"]


@pytest.mark.asyncio
async def test_bulk_endpoint_returns_count_and_failures(
    client: AsyncClient, db_session: AsyncSession, school: Dict
) -> None:
    term_id = school["term_id"]
    graded = await add_student(db_session, school["class_id"], "Ola", "Peters", "ADM060")
    missing = await add_student(db_session, school["class_id"], "Pat", "Quist", "ADM061")
    await add_results(db_session, graded, term_id, {school["subjects"]["maths"]: "70"})

    response = await client.post(
        "/api/v1/report-cards/generate-bulk",
        json={"class_id": str(school["class_id"]), "term_id": str(term_id)},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert [f["student_id"] for f in data["failures"]] == [str(missing)]


@pytest.mark.asyncio
async def test_bulk_endpoint_unknown_class_is_404(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/report-cards/generate-bulk",
        json={"class_id": "00000000-0000-0000-0000-000000000000", "term_id": str(school["term_id"])},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_concurrent_insert_is_retried_as_update(
    db_session: AsyncSession, school: Dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    student_id = await add_student(db_session, school["class_id"], "Nia", "Oke", "ADM060")
    await add_results(db_session, student_id, term_id, {subjects["maths"]: "85", subjects["english"]: "75"})

    real_commit = db_session.commit
    sync_session = db_session.sync_session
    rival_ids = []

    async def racing_commit() -> None:
        if rival_ids:
            await real_commit()
            return
        # Another request writes the (student, term) row first
        for obj in list(sync_session.new):
            if obj in sync_session:
                sync_session.expunge(obj)
        rival = ReportCard(
            student_id=student_id,
            term_id=term_id,
            class_id=school["class_id"],
            total_score=Decimal("0"),
            average_score=Decimal("0"),
            principal_remark="Keep it up",
        )
        sync_session.add(rival)
        await real_commit()
        rival_ids.append(rival.id)
        raise IntegrityError("INSERT INTO report_cards", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(db_session, "commit", racing_commit)

    card = await service.generate_report_card(db_session, student_id, term_id)

    assert card.id == rival_ids[0]
    assert card.average_score == Decimal("80.00")
    assert card.principal_remark == "Keep it up"
    assert {line.subject_name for line in card.results} == {"Mathematics", "English"}
    assert await _report_card_count(db_session) == 1


@pytest.mark.asyncio
async def test_class_batch_reports_storage_failure_per_student(
    db_session: AsyncSession, school: Dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    subjects = school["subjects"]
    term_id = school["term_id"]
    class_id = school["class_id"]
    first = await add_student(db_session, class_id, "Obi", "Ani", "ADM070")
    broken = await add_student(db_session, class_id, "Pat", "Bassey", "ADM071")
    last = await add_student(db_session, class_id, "Ruth", "Chima", "ADM072")
    for student_id in (first, broken, last):
        await add_results(db_session, student_id, term_id, {subjects["maths"]: "72"})

    real_commit = db_session.commit
    sync_session = db_session.sync_session

    async def failing_commit() -> None:
        if any(isinstance(obj, ReportCard) and obj.student_id == broken for obj in sync_session.new):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))
        await real_commit()

    monkeypatch.setattr(db_session, "commit", failing_commit)

    outcome = await batch.generate_class_reports(db_session, class_id, term_id)

    assert outcome.count == 2
    assert [(f.student_id, f.error) for f in outcome.failures] == [(broken, "Failed to save report card")]
    assert outcome.message == "Generated reports for 2 students; 1 failed"
    stored = await db_session.execute(select(ReportCard.student_id))
    assert set(stored.scalars().all()) == {first, last}
