"""
Shared fixtures: a testing app with the backend client mocked out, and
backend-shaped sample records
"""

from unittest.mock import MagicMock

import pytest

from main import create_app
from fee_models import FeeStructure, PaymentRecord, StudentRecord
from hostel_api import HostelApiClient, FeeStructureCache
from admit_card_generator import AdmitCardSettings

# 1x1 transparent PNG
PNG_DATA_URI = (
    'data:image/png;base64,'
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='
)


@pytest.fixture
def fee_structure():
    return FeeStructure(
        academic_year='2024-2025',
        category='A',
        term1_fee=4000,
        term2_fee=3000,
        term3_fee=3000,
        total_fee=10000,
    )


@pytest.fixture
def student_data():
    return {
        '_id': 'stu-001',
        'name': 'Ravi Kumar',
        'rollNumber': '22A91A0501',
        'course': {'_id': 'c-1', 'name': 'B.Tech'},
        'year': 2,
        'gender': 'Male',
        'studentPhone': '9876543210',
        'parentPhone': '9123456780',
        'address': 'Kakinada',
        'hostelId': 'H-101',
        'category': 'A',
        'roomNumber': '204',
        'academicYear': '2024-2025',
        'concession': 5000,
    }


@pytest.fixture
def student(student_data):
    return StudentRecord.from_api(student_data)


@pytest.fixture
def hostel_payment_data():
    return {
        '_id': '65f0c0ffee1234567890abcd',
        'amount': 4000,
        'term': 'term1',
        'paymentType': 'hostel_fee',
        'status': 'success',
        'paymentMethod': 'Online',
        'paymentDate': '2024-08-14T10:30:00.000Z',
        'receiptNumber': 'RCP-2024-0001',
        'transactionId': 'TXN-778899',
        'utrNumber': 'UTR123456',
        'collectedByName': 'Warden Rao',
        'studentName': 'Ravi Kumar',
        'studentRollNumber': '22A91A0501',
        'academicYear': '2024-2025',
        'category': 'A',
    }


@pytest.fixture
def electricity_payment_data():
    return {
        '_id': '65f0c0ffee1234567890ef01',
        'amount': 350,
        'paymentType': 'electricity',
        'status': 'success',
        'paymentMethod': 'Cash',
        'paymentDate': '2024-09-02T09:15:00.000Z',
        'receiptNumber': 'RCP-2024-0002',
        'billMonth': '2024-08',
        'billDetails': {'consumption': 120},
        'studentName': 'Ravi Kumar',
        'studentRollNumber': '22A91A0501',
        'roomId': {'roomNumber': '204'},
    }


@pytest.fixture
def settings():
    return AdmitCardSettings(logo_path=None, bulk_delay=0)


@pytest.fixture
def api(student, fee_structure, hostel_payment_data):
    """Backend client double returning the sample records"""
    client = MagicMock(spec=HostelApiClient)
    client.get_student.return_value = student
    client.get_fee_structure.return_value = fee_structure
    client.get_student_password.return_value = None
    client.get_payment.return_value = PaymentRecord.from_api(hostel_payment_data)
    client.list_payments.return_value = [PaymentRecord.from_api(hostel_payment_data)]
    return client


@pytest.fixture
def cache():
    return FeeStructureCache()


@pytest.fixture
def app(api):
    app = create_app('testing')
    app.extensions['hostel_api'] = api
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
