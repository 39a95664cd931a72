"""Model helpers and table constraints"""

import pytest
from sqlalchemy.exc import IntegrityError

from core.utils import utcnow
from factories import ReviewFactory, ReviewerFactory, SpeakerFactory, TagFactory
from models.scheduled_email import ScheduledEmail
from models.tag import normalize_tag_name


def test_normalize_tag_name_collapses_case_and_spaces():
    assert normalize_tag_name("  Machine   Learning ") == "machine learning"
    assert normalize_tag_name("NODE.js") == normalize_tag_name("node.JS")


def test_scheduled_email_state():
    email = ScheduledEmail(template="cfp_acceptance", recipient="a@example.com", fire_at=utcnow())

    assert email.state == "pending"
    assert email.is_pending

    email.cancelled_at = utcnow()
    assert email.state == "cancelled"
    assert not email.is_pending

    # Delivery wins over a later cancellation stamp
    email.sent_at = utcnow()
    assert email.state == "sent"


def test_speaker_full_name_and_dict():
    speaker = SpeakerFactory.build(first_name="Ada", last_name="")

    assert speaker.full_name == "Ada"
    data = speaker.to_dict()
    assert data["email"] == speaker.email
    assert data["id"] == str(speaker.id)


def test_reviewer_activation_requires_acceptance_and_active():
    reviewer = ReviewerFactory.build()
    assert reviewer.is_activated

    reviewer.is_active = False
    assert not reviewer.is_activated

    invited = ReviewerFactory.build(accepted_at=None)
    assert not invited.is_activated


@pytest.mark.asyncio
async def test_tag_names_unique_ignoring_case(db_session):
    db_session.add(TagFactory(name="Python", name_normalized="python"))
    await db_session.commit()

    db_session.add(TagFactory(name="PYTHON", name_normalized="python"))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_one_review_per_reviewer_and_submission(db_session, reviewer, make_submission):
    submission = await make_submission()
    submission_id, reviewer_id = submission.id, reviewer.id

    db_session.add(ReviewFactory(submission_id=submission_id, reviewer_id=reviewer_id))
    await db_session.commit()

    db_session.add(ReviewFactory(submission_id=submission_id, reviewer_id=reviewer_id))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()
