"""
Model data untuk sesi ujian (definisi ujian, jawaban, submission, live session)
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional, Union


def parse_instant(value) -> Optional[datetime]:
    """Parse ISO-8601 string menjadi datetime UTC (aware)"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_instant(value: Optional[datetime]) -> Optional[str]:
    """Format datetime menjadi ISO-8601 UTC dengan akhiran Z"""
    if value is None:
        return None
    return parse_instant(value).isoformat().replace('+00:00', 'Z')


ID_SEPARATOR = "_"


def composite_id(exam_id: str, student_id: str) -> str:
    """
    ID gabungan `examId_studentId` untuk submission, live session, dan draft.

    Kedua bagian tidak boleh kosong atau mengandung separator; jika boleh,
    ("a_b", "c") dan ("a", "b_c") menghasilkan ID yang sama.
    """
    for part in (exam_id, student_id):
        if not part or ID_SEPARATOR in part:
            raise ValueError(f"ID tidak boleh kosong atau mengandung '{ID_SEPARATOR}': {part!r}")
    return f"{exam_id}{ID_SEPARATOR}{student_id}"


class QuestionType(Enum):
    """Jenis soal"""
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    ESSAY = "ESSAY"


class SessionState(Enum):
    """Lifecycle sesi ujian"""
    SETUP = "setup"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    DISQUALIFIED = "disqualified"


class SubmitReason(Enum):
    """Alasan pengumpulan jawaban"""
    USER = "user"
    TIMEOUT = "timeout"
    VIOLATION = "violation"


class Question:
    """Soal ujian (immutable selama sesi)"""

    def __init__(self, question_id: str, question_type: QuestionType, points: float,
                 text: str = '', options: List[str] = None,
                 correct_option_index: int = None, reference_answer: str = None):
        if question_type == QuestionType.MULTIPLE_CHOICE:
            if not options:
                raise ValueError(f"Soal pilihan ganda {question_id} tidak memiliki opsi")
            if correct_option_index is None or not 0 <= correct_option_index < len(options):
                raise ValueError(f"Kunci jawaban soal {question_id} tidak valid")
        self.id = question_id
        self.type = question_type
        self.points = points
        self.text = text
        self.options = list(options or [])
        self.correct_option_index = correct_option_index
        self.reference_answer = reference_answer

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'type': self.type.value,
            'points': self.points,
            'text': self.text,
        }
        if self.type == QuestionType.MULTIPLE_CHOICE:
            data['options'] = list(self.options)
            data['correctOptionIndex'] = self.correct_option_index
        else:
            data['referenceAnswer'] = self.reference_answer
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        return cls(
            question_id=data['id'],
            question_type=QuestionType(data['type']),
            points=data.get('points', 0),
            text=data.get('text', ''),
            options=data.get('options'),
            correct_option_index=data.get('correctOptionIndex'),
            reference_answer=data.get('referenceAnswer')
        )

    def __repr__(self):
        return f"<Question(id='{self.id}', type={self.type.value}, points={self.points})>"


class ExamDefinition:
    """Definisi ujian dari collaborator authoring (read-only di runtime)"""

    def __init__(self, exam_id: str, questions: List[Question], start_time, end_time,
                 title: str = '', course_name: str = '', access_code: str = '',
                 is_active: bool = True):
        self.id = exam_id
        self.questions = tuple(questions)
        self.start_time = parse_instant(start_time)
        self.end_time = parse_instant(end_time)
        self.title = title
        self.course_name = course_name
        self.access_code = access_code
        self.is_active = is_active
        self._by_id = {q.id: q for q in self.questions}

    def get_question(self, question_id: str) -> Optional[Question]:
        return self._by_id.get(question_id)

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    @property
    def has_essay(self) -> bool:
        return any(q.type == QuestionType.ESSAY for q in self.questions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'courseName': self.course_name,
            'accessCode': self.access_code,
            'isActive': self.is_active,
            'questions': [q.to_dict() for q in self.questions],
            'startTime': format_instant(self.start_time),
            'endTime': format_instant(self.end_time),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExamDefinition':
        return cls(
            exam_id=data['id'],
            questions=[Question.from_dict(q) for q in data.get('questions', [])],
            start_time=data['startTime'],
            end_time=data['endTime'],
            title=data.get('title', ''),
            course_name=data.get('courseName', ''),
            access_code=data.get('accessCode', ''),
            is_active=data.get('isActive', True)
        )

    def __repr__(self):
        return f"<ExamDefinition(id='{self.id}', questions={len(self.questions)})>"


class Identity:
    """Identitas peserta yang diisi sebelum ujian dimulai"""

    def __init__(self, name: str = '', external_id: str = ''):
        self.name = (name or '').strip()
        self.external_id = (external_id or '').strip()

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.external_id)

    def to_dict(self) -> Dict[str, str]:
        return {'name': self.name, 'externalId': self.external_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Identity':
        data = data or {}
        return cls(data.get('name', ''), data.get('externalId', ''))

    def __eq__(self, other):
        if not isinstance(other, Identity):
            return NotImplemented
        return (self.name, self.external_id) == (other.name, other.external_id)

    def __repr__(self):
        return f"<Identity(name='{self.name}', external_id='{self.external_id}')>"


class MultipleChoiceAnswer:
    """Jawaban pilihan ganda"""
    question_type = QuestionType.MULTIPLE_CHOICE

    def __init__(self, question_id: str, selected_option_index: Optional[int] = None):
        self.question_id = question_id
        self.selected_option_index = selected_option_index

    def to_dict(self) -> Dict[str, Any]:
        return {'questionId': self.question_id, 'selectedOptionIndex': self.selected_option_index}

    def __eq__(self, other):
        if not isinstance(other, MultipleChoiceAnswer):
            return NotImplemented
        return (self.question_id, self.selected_option_index) == \
            (other.question_id, other.selected_option_index)

    def __repr__(self):
        return f"<MultipleChoiceAnswer(question_id='{self.question_id}', selected={self.selected_option_index})>"


class EssayAnswer:
    """Jawaban essay"""
    question_type = QuestionType.ESSAY

    def __init__(self, question_id: str, text: str = ''):
        self.question_id = question_id
        self.text = text or ''

    def to_dict(self) -> Dict[str, Any]:
        return {'questionId': self.question_id, 'essayText': self.text}

    def __eq__(self, other):
        if not isinstance(other, EssayAnswer):
            return NotImplemented
        return (self.question_id, self.text) == (other.question_id, other.text)

    def __repr__(self):
        return f"<EssayAnswer(question_id='{self.question_id}', length={len(self.text)})>"


Answer = Union[MultipleChoiceAnswer, EssayAnswer]


def blank_answer(question: Question) -> Answer:
    """Jawaban awal (kosong) untuk sebuah soal"""
    if question.type == QuestionType.MULTIPLE_CHOICE:
        return MultipleChoiceAnswer(question.id)
    return EssayAnswer(question.id)


def answer_from_dict(data: Dict[str, Any]) -> Answer:
    """Buat jawaban dari dict; jenisnya ditentukan oleh field yang ada"""
    if 'selectedOptionIndex' in data:
        return MultipleChoiceAnswer(data['questionId'], data.get('selectedOptionIndex'))
    if 'essayText' in data:
        return EssayAnswer(data['questionId'], data.get('essayText') or '')
    raise ValueError(f"Format jawaban tidak dikenal: {data}")


class GradedAnswer:
    """Jawaban yang sudah dinilai"""

    def __init__(self, answer: Answer, score: float = 0, feedback: str = None):
        self.answer = answer
        self.score = score
        self.feedback = feedback

    @property
    def question_id(self) -> str:
        return self.answer.question_id

    def to_dict(self) -> Dict[str, Any]:
        data = self.answer.to_dict()
        data['score'] = self.score
        if self.feedback is not None:
            data['feedback'] = self.feedback
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GradedAnswer':
        return cls(answer_from_dict(data), data.get('score', 0), data.get('feedback'))


class Submission:
    """Hasil akhir ujian (write-once)"""

    def __init__(self, exam_id: str, student_id: str, student_name: str,
                 student_nim: str, answers: List[GradedAnswer], total_score: float,
                 submitted_at: datetime, is_graded: bool = False,
                 violation_count: int = 0, submission_id: str = None):
        self.id = submission_id or self.make_id(exam_id, student_id)
        self.exam_id = exam_id
        self.student_id = student_id
        self.student_name = student_name
        self.student_nim = student_nim
        self.answers = list(answers)
        self.total_score = total_score
        self.submitted_at = parse_instant(submitted_at)
        self.is_graded = is_graded
        self.violation_count = violation_count

    @staticmethod
    def make_id(exam_id: str, student_id: str) -> str:
        """ID deterministik supaya upsert berulang tidak membuat submission ganda"""
        return composite_id(exam_id, student_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'examId': self.exam_id,
            'studentId': self.student_id,
            'studentName': self.student_name,
            'studentNim': self.student_nim,
            'answers': [a.to_dict() for a in self.answers],
            'totalScore': self.total_score,
            'submittedAt': format_instant(self.submitted_at),
            'isGraded': self.is_graded,
            'violationCount': self.violation_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Submission':
        return cls(
            exam_id=data['examId'],
            student_id=data['studentId'],
            student_name=data.get('studentName', ''),
            student_nim=data.get('studentNim', ''),
            answers=[GradedAnswer.from_dict(a) for a in data.get('answers', [])],
            total_score=data.get('totalScore', 0),
            submitted_at=data.get('submittedAt'),
            is_graded=data.get('isGraded', False),
            violation_count=data.get('violationCount', 0),
            submission_id=data.get('id')
        )

    def __repr__(self):
        return f"<Submission(id='{self.id}', total_score={self.total_score})>"


class LiveSessionRecord:
    """Status live peserta untuk monitoring (satu per exam + student)"""

    def __init__(self, exam_id: str, student_id: str, student_name: str,
                 started_at: datetime, last_heartbeat: datetime, violation_count: int = 0):
        self.exam_id = exam_id
        self.student_id = student_id
        self.student_name = student_name
        self.started_at = parse_instant(started_at)
        self.last_heartbeat = parse_instant(last_heartbeat)
        self.violation_count = violation_count

    @property
    def id(self) -> str:
        return composite_id(self.exam_id, self.student_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'examId': self.exam_id,
            'studentId': self.student_id,
            'studentName': self.student_name,
            'startedAt': format_instant(self.started_at),
            'lastHeartbeat': format_instant(self.last_heartbeat),
            'violationCount': self.violation_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LiveSessionRecord':
        return cls(
            exam_id=data['examId'],
            student_id=data['studentId'],
            student_name=data.get('studentName', ''),
            started_at=data.get('startedAt'),
            last_heartbeat=data.get('lastHeartbeat'),
            violation_count=data.get('violationCount', 0)
        )

    def __repr__(self):
        return f"<LiveSessionRecord(id='{self.id}', violations={self.violation_count})>"


class DraftSnapshot:
    """Snapshot jawaban sementara untuk crash recovery"""

    def __init__(self, answers: List[Answer], identity: Identity = None):
        self.answers = list(answers)
        self.identity = identity or Identity()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'answers': [a.to_dict() for a in self.answers],
            'identity': self.identity.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DraftSnapshot':
        answers = []
        for item in data.get('answers', []):
            try:
                answers.append(answer_from_dict(item))
            except (KeyError, ValueError):
                continue
        return cls(answers, Identity.from_dict(data.get('identity')))
