from .models import Base, ExamEntry, SubmissionEntry, LiveSessionEntry, AnswerDraftEntry
from .database_manager import DatabaseManager

__all__ = [
    'Base',
    'ExamEntry',
    'SubmissionEntry',
    'LiveSessionEntry',
    'AnswerDraftEntry',
    'DatabaseManager'
]
