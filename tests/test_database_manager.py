"""
Tests untuk DatabaseManager (store lokal SQLite)
"""
import pytest

from ujian.database.database_manager import DatabaseManager


def submission_record(exam_id, student_id, score=0):
    return {
        'id': f"{exam_id}_{student_id}",
        'examId': exam_id,
        'studentId': student_id,
        'totalScore': score,
        'submittedAt': '2026-03-02T08:30:00Z',
    }


class TestRecords:

    def test_upsert_replaces_by_id(self, db_manager):
        db_manager.upsert_record('submissions', 'exam-bio_s1', submission_record('exam-bio', 's1', 5))
        db_manager.upsert_record('submissions', 'exam-bio_s1', submission_record('exam-bio', 's1', 10))

        records = db_manager.get_records('submissions')

        assert len(records) == 1
        assert db_manager.get_record('submissions', 'exam-bio_s1')['totalScore'] == 10

    def test_filters(self, db_manager):
        db_manager.upsert_record('submissions', 'exam-bio_s1', submission_record('exam-bio', 's1'))
        db_manager.upsert_record('submissions', 'exam-bio_s2', submission_record('exam-bio', 's2'))
        db_manager.upsert_record('submissions', 'exam-kim_s1', submission_record('exam-kim', 's1'))

        by_exam = db_manager.get_records('submissions', {'examId': 'exam-bio'})
        by_student = db_manager.get_records('submissions', {'examId': 'exam-kim', 'studentId': 's1'})

        assert [r['studentId'] for r in by_exam] == ['s1', 's2']
        assert [r['id'] for r in by_student] == ['exam-kim_s1']

    def test_access_code_lookup_is_case_insensitive(self, db_manager, sample_exam):
        db_manager.save_exam(sample_exam.to_dict())

        found = db_manager.get_records('exams', {'accessCode': ' bio123 '})

        assert [r['id'] for r in found] == ['exam-bio']
        assert db_manager.get_records('exams', {'accessCode': 'KIM999'}) == []

    def test_unsupported_filter_and_kind(self, db_manager):
        with pytest.raises(ValueError):
            db_manager.get_records('submissions', {'accessCode': 'BIO123'})
        with pytest.raises(ValueError):
            db_manager.get_records('grades')

    def test_delete(self, db_manager):
        db_manager.upsert_record('sessions', 'exam-bio_s1', {
            'examId': 'exam-bio', 'studentId': 's1', 'lastHeartbeat': '2026-03-02T08:00:00Z'
        })

        assert db_manager.delete_record('sessions', 'exam-bio_s1') is True
        assert db_manager.delete_record('sessions', 'exam-bio_s1') is False
        assert db_manager.get_record('sessions', 'exam-bio_s1') is None

    def test_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "persist.db")
        first = DatabaseManager(path)
        first.upsert_record('submissions', 'exam-bio_s1', submission_record('exam-bio', 's1', 7))
        first.close()

        second = DatabaseManager(path)
        try:
            assert second.get_record('submissions', 'exam-bio_s1')['totalScore'] == 7
        finally:
            second.close()


class TestDrafts:

    def test_save_load_delete(self, db_manager):
        draft = {'answers': [{'questionId': 'q3', 'essayText': 'Mitokondria'}],
                 'identity': {'name': 'Budi', 'externalId': '1900123'}}

        db_manager.save_draft('exam-bio', 's1', draft)
        db_manager.save_draft('exam-bio', 's1', {**draft, 'answers': []})

        assert db_manager.load_draft('exam-bio', 's1')['answers'] == []
        assert db_manager.load_draft('exam-bio', 's2') is None
        assert db_manager.delete_draft('exam-bio', 's1') is True
        assert db_manager.load_draft('exam-bio', 's1') is None

    @pytest.mark.parametrize("exam_id,student_id", [("a_b", "c"), ("a", "b_c"), ("", "s1")])
    def test_ambiguous_keys_rejected(self, db_manager, exam_id, student_id):
        with pytest.raises(ValueError):
            db_manager.save_draft(exam_id, student_id, {'answers': []})
