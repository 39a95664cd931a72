"""Import all models"""

from core.database import Base
from models.decision_record import Decision, DecisionRecord, StatusOverride
from models.review import Review
from models.reviewer import Reviewer, ReviewerRole
from models.scheduled_email import ScheduledEmail
from models.speaker import Speaker
from models.submission import Submission, SubmissionStatus, SubmissionType, TalkLevel
from models.tag import Tag, submission_tags

__all__ = [
    "Base",
    "Speaker",
    "Submission",
    "SubmissionStatus",
    "SubmissionType",
    "TalkLevel",
    "Tag",
    "submission_tags",
    "Reviewer",
    "ReviewerRole",
    "Review",
    "Decision",
    "DecisionRecord",
    "StatusOverride",
    "ScheduledEmail",
]
