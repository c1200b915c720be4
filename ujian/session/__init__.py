from .models import (QuestionType, SessionState, SubmitReason, Question, ExamDefinition,
                     Identity, MultipleChoiceAnswer, EssayAnswer, GradedAnswer,
                     Submission, LiveSessionRecord, DraftSnapshot)
from .scheduler import Scheduler, SystemClock, TaskHandle, PeriodicTask
from .timekeeper import Timekeeper
from .autosave import AutosavePersister, merge_answers
from .heartbeat import HeartbeatReporter

__all__ = [
    'QuestionType',
    'SessionState',
    'SubmitReason',
    'Question',
    'ExamDefinition',
    'Identity',
    'MultipleChoiceAnswer',
    'EssayAnswer',
    'GradedAnswer',
    'Submission',
    'LiveSessionRecord',
    'DraftSnapshot',
    'Scheduler',
    'SystemClock',
    'TaskHandle',
    'PeriodicTask',
    'Timekeeper',
    'AutosavePersister',
    'merge_answers',
    'HeartbeatReporter'
]
