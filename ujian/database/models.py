"""
Database models untuk penyimpanan lokal (fallback store dan draft jawaban)
"""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ExamEntry(Base):
    """Definisi ujian (disalin dari collaborator authoring)"""
    __tablename__ = 'exams'
    
    id = Column(String(100), primary_key=True)
    access_code = Column(String(50), index=True)
    is_active = Column(Boolean, default=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    payload = Column(Text, nullable=False)  # JSON ExamDefinition
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self):
        return f"<ExamEntry(id='{self.id}', access_code='{self.access_code}')>"


class SubmissionEntry(Base):
    """Submission akhir peserta"""
    __tablename__ = 'submissions'
    
    id = Column(String(200), primary_key=True)
    exam_id = Column(String(100), index=True, nullable=False)
    student_id = Column(String(100), index=True, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    payload = Column(Text, nullable=False)  # JSON Submission
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self):
        return f"<SubmissionEntry(id='{self.id}', exam_id='{self.exam_id}')>"


class LiveSessionEntry(Base):
    """Status live peserta, satu baris per (exam, student)"""
    __tablename__ = 'live_sessions'
    
    id = Column(String(200), primary_key=True)  # examId_studentId
    exam_id = Column(String(100), index=True, nullable=False)
    student_id = Column(String(100), index=True, nullable=False)
    last_heartbeat = Column(DateTime, nullable=True)
    payload = Column(Text, nullable=False)  # JSON LiveSessionRecord
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self):
        return f"<LiveSessionEntry(id='{self.id}', last_heartbeat={self.last_heartbeat})>"


class AnswerDraftEntry(Base):
    """Draft jawaban lokal untuk crash recovery"""
    __tablename__ = 'answer_drafts'
    
    id = Column(String(200), primary_key=True)  # examId_studentId
    exam_id = Column(String(100), nullable=False)
    student_id = Column(String(100), nullable=False)
    payload = Column(Text, nullable=False)  # JSON {answers, identity}
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self):
        return f"<AnswerDraftEntry(id='{self.id}')>"
