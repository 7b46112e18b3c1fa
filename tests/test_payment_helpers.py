from datetime import date

import pytest

from fee_models import PaymentRecord
from payment_helpers import filter_payments, payment_stats, payments_for_student


@pytest.fixture
def payments():
    rows = [
        {'_id': 'p1', 'amount': 4000, 'term': 'term1', 'paymentType': 'hostel_fee', 'status': 'success',
         'paymentMethod': 'Cash', 'paymentDate': '2024-08-01T09:00:00', 'receiptNumber': 'RCP-1',
         'studentName': 'Ravi Kumar', 'studentRollNumber': '22A91A0501', 'academicYear': '2024-2025'},
        {'_id': 'p2', 'amount': 350, 'paymentType': 'electricity', 'status': 'success',
         'paymentMethod': 'Online', 'paymentDate': '2024-08-31T23:45:00+05:30', 'transactionId': 'TXN-42',
         'studentName': 'Sita Devi', 'studentRollNumber': '22A91A0502', 'academicYear': '2024-2025'},
        {'_id': 'p3', 'amount': 1200, 'paymentType': 'additional_fee', 'status': 'pending',
         'paymentMethod': 'Online', 'paymentDate': '2024-09-05T12:00:00',
         'studentName': 'Arjun', 'studentRollNumber': '23A91A0101', 'academicYear': '2025-2026'},
        {'_id': 'p4', 'amount': 500, 'term': '2', 'paymentType': 'hostel_fee', 'status': 'Success',
         'paymentMethod': 'cash', 'studentName': 'Ravi Kumar', 'academicYear': '2024-2025'},
    ]
    return [PaymentRecord.from_api(row) for row in rows]


def _ids(payments):
    return [p.payment_id for p in payments]


class TestFilterPayments:
    def test_no_filters_keeps_everything_in_order(self, payments):
        assert _ids(filter_payments(payments)) == ['p1', 'p2', 'p3', 'p4']

    def test_filter_by_type(self, payments):
        assert _ids(filter_payments(payments, payment_type='hostel_fee')) == ['p1', 'p4']

    def test_method_and_status_are_case_insensitive(self, payments):
        assert _ids(filter_payments(payments, payment_method='CASH')) == ['p1', 'p4']
        assert _ids(filter_payments(payments, status='SUCCESS')) == ['p1', 'p2', 'p4']

    def test_date_range_includes_whole_end_day(self, payments):
        result = filter_payments(payments, from_date='2024-08-01', to_date='2024-08-31')
        assert _ids(result) == ['p1', 'p2']

    def test_date_objects_are_accepted(self, payments):
        assert _ids(filter_payments(payments, from_date=date(2024, 9, 1))) == ['p3']

    def test_payments_without_date_drop_out_of_date_filters(self, payments):
        assert 'p4' not in _ids(filter_payments(payments, to_date='2030-01-01'))

    def test_bad_date_raises(self, payments):
        with pytest.raises(ValueError):
            filter_payments(payments, from_date='01/08/2024')

    def test_academic_year(self, payments):
        assert _ids(filter_payments(payments, academic_year='2025-2026')) == ['p3']

    def test_search_matches_name_roll_receipt_and_transaction(self, payments):
        assert _ids(filter_payments(payments, search='ravi')) == ['p1', 'p4']
        assert _ids(filter_payments(payments, search='0502')) == ['p2']
        assert _ids(filter_payments(payments, search='rcp-1')) == ['p1']
        assert _ids(filter_payments(payments, search=' txn-42 ')) == ['p2']
        assert filter_payments(payments, search='nobody') == []


def test_payment_stats(payments):
    stats = payment_stats(payments)
    assert stats == {
        'total_amount': 6050,
        'total_count': 4,
        'success_count': 3,
        'hostel_fee_count': 2,
        'electricity_count': 1,
        'additional_fee_count': 1,
    }


def test_payment_stats_empty():
    assert payment_stats([])['total_count'] == 0


class TestPaymentsForStudent:
    def test_matches_on_student_id(self, student):
        payments = [
            PaymentRecord(payment_id='mine', student_id='stu-001', amount=100),
            PaymentRecord(payment_id='theirs', student_id='stu-999', amount=100,
                          student_roll_number=student.roll_number),
        ]
        assert _ids(payments_for_student(payments, student)) == ['mine']

    def test_falls_back_to_roll_number(self, student):
        payments = [
            PaymentRecord(payment_id='by-roll', student_roll_number='22A91A0501'),
            PaymentRecord(payment_id='other-roll', student_roll_number='22A91A0599'),
            PaymentRecord(payment_id='anonymous'),
        ]
        assert _ids(payments_for_student(payments, student)) == ['by-roll']
