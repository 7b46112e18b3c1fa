"""
Fee Document Routes for the Hostel Admin Portal
Admit card and receipt downloads, bulk admit cards, student fee overview and payment records
"""

import io
import zipfile
import logging
from flask import Blueprint, request, jsonify, send_file, current_app

from fee_helpers import build_fee_overview, FEE_STRUCTURE_MISSING_MESSAGE
from fee_models import PaymentTypeEnum
from payment_helpers import filter_payments, payment_stats, payments_for_student
from hostel_api import HostelApiClient, FeeStructureCache, HostelApiError
from admit_card_generator import (
    AdmitCardSettings, generate_admit_card, generate_bulk_admit_cards,
    academic_year_for, category_for
)
from receipt_generator import compose_receipt, DEFAULT_SYSTEM_NAME
from pdf_renderer import render_document, select_table_renderer
from document_models import InvalidDocumentData

logger = logging.getLogger(__name__)


def get_api() -> HostelApiClient:
    return current_app.extensions['hostel_api']


def get_fee_structure_cache() -> FeeStructureCache:
    return current_app.extensions['fee_structure_cache']


def _renderer_options():
    return {
        'table_renderer': select_table_renderer(current_app.config.get('PDF_TABLE_RENDERER')),
        'font_path': current_app.config.get('PDF_FONT_PATH'),
    }


def _error(message, status):
    return jsonify({'success': False, 'message': message}), status


def _pdf_response(content: bytes, filename: str):
    return send_file(io.BytesIO(content), as_attachment=True, download_name=filename,
                     mimetype='application/pdf')


def create_fee_blueprint() -> Blueprint:
    """Blueprint with all fee document routes"""
    fees_bp = Blueprint('fees', __name__, url_prefix='/fees')

    # ===== ADMIT CARDS =====

    @fees_bp.route('/students/<student_id>/admit-card')
    def admit_card(student_id):
        """Download the two-copy admit card for one student"""
        settings = AdmitCardSettings.from_config(current_app.config)
        try:
            pdf = generate_admit_card(student_id, get_api(), get_fee_structure_cache(), settings,
                                      password=request.args.get('password') or None,
                                      **_renderer_options())
        except HostelApiError as e:
            logger.error(f"Error fetching student {student_id} for admit card: {e}")
            return _error('Failed to load student data for admit card', 502)
        except InvalidDocumentData as e:
            logger.error(f"Error generating admit card for {student_id}: {e}")
            return _error('Failed to generate admit card', 500)

        return _pdf_response(pdf.content, pdf.filename)

    @fees_bp.route('/admit-cards/bulk', methods=['POST'])
    def bulk_admit_cards():
        """Generate admit cards for the selected students, returned as one zip"""
        data = request.get_json(silent=True) or {}
        student_ids = [str(s) for s in data.get('student_ids') or [] if s]
        if not student_ids:
            return _error('Please select students to generate admit cards', 400)

        settings = AdmitCardSettings.from_config(current_app.config)
        result = generate_bulk_admit_cards(student_ids, get_api(), get_fee_structure_cache(),
                                           settings, **_renderer_options())
        if not result.generated:
            return jsonify({
                'success': False,
                'message': 'Failed to generate admit cards',
                'failed': [{'student_id': sid, 'error': err} for sid, err in result.failed],
            }), 500

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
            for pdf in result.generated:
                archive.writestr(pdf.filename, pdf.content)
        buffer.seek(0)

        response = send_file(buffer, as_attachment=True, download_name='AdmitCards.zip',
                             mimetype='application/zip')
        response.headers['X-Generated-Count'] = str(result.success_count)
        if result.failed:
            response.headers['X-Failed-Students'] = ','.join(sid for sid, _ in result.failed)
        return response

    # ===== RECEIPTS =====

    @fees_bp.route('/payments/<payment_id>/receipt')
    def payment_receipt(payment_id):
        """Download the receipt for one payment"""
        api = get_api()
        try:
            payment = api.get_payment(payment_id)
            student_id = request.args.get('student_id')
            student = api.get_student(student_id) if student_id else None
        except HostelApiError as e:
            logger.error(f"Error fetching payment {payment_id}: {e}")
            return _error('Failed to load payment', 502)

        doc = compose_receipt(payment, student,
                              system_name=current_app.config.get('SYSTEM_NAME', DEFAULT_SYSTEM_NAME),
                              currency_symbol=current_app.config.get('CURRENCY_SYMBOL', '₹'),
                              display_timezone=current_app.config.get('DISPLAY_TIMEZONE'))
        if doc is None:
            return _error('Failed to generate receipt', 500)
        return _pdf_response(render_document(doc, **_renderer_options()), doc.filename)

    # ===== FEE OVERVIEW =====

    @fees_bp.route('/students/<student_id>/fee-overview')
    def fee_overview(student_id):
        """Per-term required, paid and pending amounts for one student"""
        api = get_api()
        settings = AdmitCardSettings.from_config(current_app.config)
        try:
            student = api.get_student(student_id)
            fee_structure = get_fee_structure_cache().get(
                academic_year_for(student, settings), category_for(student, settings), api.get_fee_structure
            )
            payments = api.list_payments(payment_type=PaymentTypeEnum.HOSTEL_FEE.value, student_id=student_id)
            payments = payments_for_student(payments, student)
        except HostelApiError as e:
            logger.error(f"Error loading fee overview for {student_id}: {e}")
            return _error('Failed to load fee details', 502)

        overview = build_fee_overview(fee_structure, student.fee_profile, payments)
        if not overview.structure_configured:
            return jsonify({
                'success': False,
                'message': FEE_STRUCTURE_MISSING_MESSAGE,
                'data': overview.to_dict(),
            }), 409
        return jsonify({'success': True, 'data': overview.to_dict()})

    # ===== PAYMENT RECORDS =====

    @fees_bp.route('/payments')
    def payment_records():
        """Payment list with the admin screen's filters and summary stats"""
        args = request.args
        try:
            payments = get_api().list_payments(payment_type=args.get('paymentType'), search=args.get('search'))
        except HostelApiError as e:
            logger.error(f"Error fetching payments: {e}")
            return _error('Failed to fetch payments', 502)

        try:
            payments = filter_payments(
                payments,
                payment_type=args.get('paymentType'),
                payment_method=args.get('paymentMethod'),
                status=args.get('status'),
                from_date=args.get('fromDate'),
                to_date=args.get('toDate'),
                academic_year=args.get('academicYear'),
                search=args.get('search'),
            )
        except ValueError:
            return _error('Dates must be in YYYY-MM-DD format', 400)

        return jsonify({
            'success': True,
            'data': {
                'payments': [_payment_row(p) for p in payments],
                'stats': payment_stats(payments),
            },
        })

    return fees_bp


def _payment_row(payment) -> dict:
    return {
        'id': payment.payment_id,
        'receiptNumber': payment.receipt_number,
        'transactionId': payment.transaction_id,
        'studentName': payment.student_name,
        'studentRollNumber': payment.student_roll_number,
        'amount': payment.amount,
        'term': payment.term,
        'paymentType': payment.payment_type,
        'paymentMethod': payment.payment_method,
        'status': payment.status,
        'paymentDate': payment.payment_date.isoformat() if payment.payment_date else None,
        'academicYear': payment.academic_year,
    }


def register_fee_routes(app):
    """Register the fee document blueprint on the app"""
    app.register_blueprint(create_fee_blueprint())
