import io
import zipfile

from fee_models import PaymentRecord, StudentRecord
from hostel_api import HostelApiError, HostelApiClient, FeeStructureCache
from fee_helpers import FEE_STRUCTURE_MISSING_MESSAGE


def test_app_wires_backend_client():
    from main import create_app
    app = create_app('testing')
    assert isinstance(app.extensions['hostel_api'], HostelApiClient)
    assert isinstance(app.extensions['fee_structure_cache'], FeeStructureCache)
    assert app.extensions['hostel_api'].base_url == 'http://hostel-api.test'


class TestAdmitCardRoutes:
    def test_download_admit_card(self, client, api):
        response = client.get('/fees/students/stu-001/admit-card?password=Stu@1')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert 'AdmitCard_Ravi Kumar_22A91A0501.pdf' in response.headers['Content-Disposition']
        api.get_student.assert_called_once_with('stu-001')

    def test_unknown_student_is_bad_gateway(self, client, api):
        api.get_student.side_effect = HostelApiError('Student not found', status_code=404)
        response = client.get('/fees/students/missing/admit-card')

        assert response.status_code == 502
        assert response.get_json()['success'] is False

    def test_bulk_requires_selection(self, client):
        response = client.post('/fees/admit-cards/bulk', json={'student_ids': []})
        assert response.status_code == 400

    def test_bulk_returns_zip_and_reports_failures(self, client, api):
        def lookup(student_id):
            if student_id == 'bad':
                raise HostelApiError('Student not found')
            return StudentRecord(student_id=student_id, name='Student', roll_number=student_id,
                                 academic_year='2024-2025', category='A')

        api.get_student.side_effect = lookup
        response = client.post('/fees/admit-cards/bulk', json={'student_ids': ['s1', 'bad', 's2']})

        assert response.status_code == 200
        assert response.mimetype == 'application/zip'
        assert response.headers['X-Generated-Count'] == '2'
        assert response.headers['X-Failed-Students'] == 'bad'
        with zipfile.ZipFile(io.BytesIO(response.data)) as archive:
            assert archive.namelist() == ['AdmitCard_Student_s1.pdf', 'AdmitCard_Student_s2.pdf']

    def test_bulk_all_failed(self, client, api):
        api.get_student.side_effect = HostelApiError('down')
        response = client.post('/fees/admit-cards/bulk', json={'student_ids': ['s1']})

        assert response.status_code == 500
        assert response.get_json()['failed'] == [{'student_id': 's1', 'error': 'down'}]


class TestReceiptRoutes:
    def test_download_receipt(self, client, api):
        response = client.get('/fees/payments/p1/receipt?student_id=stu-001')

        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')
        assert 'payment_receipt_RCP-2024-0001.pdf' in response.headers['Content-Disposition']
        api.get_payment.assert_called_once_with('p1')
        api.get_student.assert_called_once_with('stu-001')

    def test_receipt_without_student_lookup(self, client, api):
        response = client.get('/fees/payments/p1/receipt')
        assert response.status_code == 200
        api.get_student.assert_not_called()

    def test_missing_payment(self, client, api):
        api.get_payment.side_effect = HostelApiError('Payment not found', status_code=404)
        assert client.get('/fees/payments/nope/receipt').status_code == 502


class TestFeeOverviewRoute:
    def test_overview(self, client, api):
        response = client.get('/fees/students/stu-001/fee-overview')
        data = response.get_json()['data']

        assert response.status_code == 200
        # 5000 concession leaves term 1 at zero, the 4000 term 1 payment carries forward
        assert [t['required'] for t in data['terms']] == [0, 2000, 3000]
        assert [t['paid'] for t in data['terms']] == [0, 2000, 2000]
        assert [t['status'] for t in data['terms']] == ['Paid', 'Paid', 'Partially Paid']
        assert data['pending_amount'] == 1000
        api.list_payments.assert_called_once_with(payment_type='hostel_fee', student_id='stu-001')

    def test_other_students_payments_are_ignored(self, client, api, hostel_payment_data):
        api.list_payments.return_value = [
            PaymentRecord.from_api(dict(hostel_payment_data, studentId='stu-001', amount=1000)),
            PaymentRecord.from_api(dict(hostel_payment_data, studentId='stu-777', amount=9000,
                                        studentName='Someone Else', studentRollNumber='22A91A0777')),
        ]
        data = client.get('/fees/students/stu-001/fee-overview').get_json()['data']

        assert data['paid_amount'] == 1000
        assert data['pending_amount'] == 4000

    def test_missing_fee_structure_blocks_overview(self, client, api):
        api.get_fee_structure.return_value = None
        response = client.get('/fees/students/stu-001/fee-overview')

        assert response.status_code == 409
        assert response.get_json()['message'] == FEE_STRUCTURE_MISSING_MESSAGE


class TestPaymentRecordsRoute:
    def test_filtered_payments_with_stats(self, client, api, hostel_payment_data, electricity_payment_data):
        api.list_payments.return_value = [
            PaymentRecord.from_api(hostel_payment_data), PaymentRecord.from_api(electricity_payment_data),
        ]
        response = client.get('/fees/payments?paymentMethod=online&fromDate=2024-08-01&toDate=2024-08-31')
        data = response.get_json()['data']

        assert response.status_code == 200
        assert [p['receiptNumber'] for p in data['payments']] == ['RCP-2024-0001']
        assert data['stats']['total_amount'] == 4000
        assert data['stats']['hostel_fee_count'] == 1

    def test_bad_date_is_rejected(self, client):
        assert client.get('/fees/payments?fromDate=14-08-2024').status_code == 400

    def test_backend_failure(self, client, api):
        api.list_payments.side_effect = HostelApiError('down')
        assert client.get('/fees/payments').status_code == 502


def test_unknown_route_is_json_404(client):
    response = client.get('/fees/nowhere')
    assert response.status_code == 404
    assert response.get_json()['success'] is False
