from unittest.mock import MagicMock

import pytest
import requests

from config import TestingConfig
from fee_models import FeeStructure, PaymentRecord
from hostel_api import HostelApiClient, HostelApiError, FeeStructureCache


def _response(payload=None, status_code=200, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    if invalid_json:
        response.json.side_effect = ValueError('no json')
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def hostel_api(session):
    return HostelApiClient('http://hostel-api.test/', {'Authorization': 'Bearer t0ken'}, timeout=3,
                           session=session)


class TestRequests:
    def test_headers_and_timeout_are_applied(self, hostel_api, session):
        session.request.return_value = _response({'success': True, 'data': {'password': 'pw'}})
        hostel_api.get_student_password('stu-1')

        assert session.headers['Authorization'] == 'Bearer t0ken'
        session.request.assert_called_once_with(
            'GET', 'http://hostel-api.test/api/admin/students/stu-1/temp-password', timeout=3
        )

    def test_http_error_raises_with_status(self, hostel_api, session):
        session.request.return_value = _response({'success': False}, status_code=404)
        with pytest.raises(HostelApiError) as exc:
            hostel_api.get_payment('missing')
        assert exc.value.status_code == 404

    def test_connection_error_raises(self, hostel_api, session):
        session.request.side_effect = requests.ConnectionError('refused')
        with pytest.raises(HostelApiError):
            hostel_api.get_student('stu-1')

    def test_invalid_json_raises(self, hostel_api, session):
        session.request.return_value = _response(invalid_json=True)
        with pytest.raises(HostelApiError):
            hostel_api.list_payments()

    def test_client_from_config_object(self):
        config = TestingConfig()
        client = HostelApiClient.from_config(config)
        assert client.base_url == 'http://hostel-api.test'
        assert client.session.headers['Content-Type'] == 'application/json'

    def test_client_from_config_mapping(self):
        client = HostelApiClient.from_config({
            'HOSTEL_API_BASE_URL': 'http://backend/', 'HOSTEL_API_TOKEN': 'abc', 'HOSTEL_API_TIMEOUT': 5,
        })
        assert client.base_url == 'http://backend'
        assert client.timeout == 5
        assert client.session.headers['Authorization'] == 'Bearer abc'


class TestFeeStructures:
    def test_found_structure(self, hostel_api, session):
        session.request.return_value = _response({
            'success': True,
            'data': {'academicYear': '2024-2025', 'category': 'B', 'term1Fee': '4,000',
                     'term2Fee': 3000, 'term3Fee': 3000},
        })
        structure = hostel_api.get_fee_structure('2024-2025', 'B')

        assert structure == FeeStructure('2024-2025', 'B', 4000, 3000, 3000, 10000)
        assert session.request.call_args[0][1].endswith('/api/fee-structures/admit-card/2024-2025/B')

    @pytest.mark.parametrize('payload', [
        {'success': False, 'message': 'Fee structure not found'},
        {'success': True, 'data': {'found': False, 'term1Fee': 0}},
        {'success': True, 'data': None},
    ])
    def test_missing_structure_is_none(self, hostel_api, session, payload):
        session.request.return_value = _response(payload)
        assert hostel_api.get_fee_structure('2024-2025', 'Z') is None

    def test_backend_failure_is_none(self, hostel_api, session):
        session.request.return_value = _response({}, status_code=500)
        assert hostel_api.get_fee_structure('2024-2025', 'A') is None


class TestStudentsAndPayments:
    def test_get_student(self, hostel_api, session, student_data):
        session.request.return_value = _response({'success': True, 'data': {'student': student_data}})
        student = hostel_api.get_student('stu-001')

        assert session.request.call_args[0][0] == 'POST'
        assert student.name == 'Ravi Kumar'
        assert student.course == 'B.Tech'
        assert student.fee_profile.concession == 5000

    def test_get_student_unsuccessful_raises(self, hostel_api, session):
        session.request.return_value = _response({'success': False, 'message': 'Student not found'})
        with pytest.raises(HostelApiError, match='Student not found'):
            hostel_api.get_student('nope')

    def test_missing_password_is_none(self, hostel_api, session):
        session.request.return_value = _response({'success': False, 'message': 'expired'})
        assert hostel_api.get_student_password('stu-1') is None

    def test_get_payment_unwraps_payment_key(self, hostel_api, session, hostel_payment_data):
        session.request.return_value = _response({'success': True, 'data': {'payment': hostel_payment_data}})
        payment = hostel_api.get_payment('p1')
        assert payment.receipt_number == 'RCP-2024-0001'
        assert payment.term == 1

    def test_list_payments_passes_filters(self, hostel_api, session, hostel_payment_data,
                                          electricity_payment_data):
        session.request.return_value = _response({
            'success': True, 'data': {'payments': [hostel_payment_data, electricity_payment_data, 'junk']},
        })
        payments = hostel_api.list_payments(payment_type='hostel_fee', student_id='stu-001')

        assert [p.payment_type for p in payments] == ['hostel_fee', 'electricity']
        assert session.request.call_args[1]['params'] == {
            'paymentType': 'hostel_fee', 'studentId': 'stu-001', 'limit': 100, 'page': 1,
        }
        assert payments[1].room_number == '204'

    def test_list_payments_follows_pages(self, hostel_api, session):
        session.request.side_effect = [
            _response({'success': True, 'data': {
                'payments': [{'_id': 'p1', 'amount': 100}, {'_id': 'p2', 'amount': 200}],
                'pagination': {'currentPage': 1, 'totalPages': 2, 'hasNext': True},
            }}),
            _response({'success': True, 'data': {
                'payments': [{'_id': 'p3', 'amount': 300}],
                'pagination': {'currentPage': 2, 'totalPages': 2, 'hasNext': False},
            }}),
        ]
        payments = hostel_api.list_payments(page_size=2)

        assert [p.payment_id for p in payments] == ['p1', 'p2', 'p3']
        assert [c[1]['params'] for c in session.request.call_args_list] == [
            {'limit': 2, 'page': 1}, {'limit': 2, 'page': 2},
        ]

    def test_list_payments_stops_on_empty_page(self, hostel_api, session):
        session.request.return_value = _response({'success': True, 'data': {
            'payments': [], 'pagination': {'hasNext': True},
        }})
        assert hostel_api.list_payments() == []
        assert session.request.call_count == 1

    def test_payment_keeps_student_reference(self, hostel_payment_data):
        assert PaymentRecord.from_api(dict(hostel_payment_data, studentId='stu-001')).student_id == 'stu-001'
        populated = dict(hostel_payment_data, studentId={'_id': 'stu-002', 'name': 'Sita'})
        assert PaymentRecord.from_api(populated).student_id == 'stu-002'


class TestFeeStructureCache:
    def test_second_lookup_is_served_from_cache(self, fee_structure):
        cache = FeeStructureCache()
        loader = MagicMock(return_value=fee_structure)

        assert cache.get('2024-2025', 'A', loader) is fee_structure
        assert cache.get('2024-2025', 'A', loader) is fee_structure
        loader.assert_called_once_with('2024-2025', 'A')
        assert '2024-2025-A' in cache
        assert len(cache) == 1

    def test_keys_are_per_year_and_category(self, fee_structure):
        cache = FeeStructureCache()
        loader = MagicMock(return_value=fee_structure)
        cache.get('2024-2025', 'A', loader)
        cache.get('2024-2025', 'B', loader)
        cache.get('2025-2026', 'A', loader)
        assert loader.call_count == 3

    def test_misses_are_not_cached(self):
        cache = FeeStructureCache()
        loader = MagicMock(return_value=None)
        assert cache.get('2024-2025', 'Z', loader) is None
        assert cache.get('2024-2025', 'Z', loader) is None
        assert loader.call_count == 2
        assert len(cache) == 0
