"""
Flask CLI commands for generating fee documents from the command line
"""

import os
import click
from flask import Flask, current_app
from datetime import datetime
import logging

from hostel_api import HostelApiClient, FeeStructureCache, HostelApiError
from admit_card_generator import (
    AdmitCardSettings, generate_admit_card, generate_bulk_admit_cards, academic_year_for, category_for
)
from receipt_generator import compose_receipt, DEFAULT_SYSTEM_NAME
from pdf_renderer import render_document, select_table_renderer
from fee_helpers import build_fee_overview, FEE_STRUCTURE_MISSING_MESSAGE
from fee_models import PaymentTypeEnum
from payment_helpers import payments_for_student
from document_helpers import format_currency
from document_models import InvalidDocumentData

logger = logging.getLogger(__name__)


def _write_pdf(output_dir: str, filename: str, content: bytes) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    with open(path, 'wb') as fh:
        fh.write(content)
    return path


def register_cli_commands(app: Flask):
    """Register CLI commands with the Flask app"""

    def api_client() -> HostelApiClient:
        return current_app.extensions['hostel_api']

    @app.cli.command("admit-cards")
    @click.argument("student_ids", nargs=-1, required=True)
    @click.option("--output-dir", default=None, help="Directory for the PDFs (default: OUTPUT_DIR)")
    @click.option("--password", default=None, help="Password to print on the student copy (single student)")
    def admit_cards_command(student_ids, output_dir, password):
        """Generate admit cards for one or more students, in the given order"""
        output_dir = output_dir or current_app.config['OUTPUT_DIR']
        settings = AdmitCardSettings.from_config(current_app.config)
        # One cache per run
        cache = FeeStructureCache()
        table_renderer = select_table_renderer(current_app.config.get('PDF_TABLE_RENDERER'))
        font_path = current_app.config.get('PDF_FONT_PATH')

        if password and len(student_ids) > 1:
            click.echo("❌ --password can only be used with a single student")
            return

        click.echo(f"🪪 Generating {len(student_ids)} admit card(s)...")
        if password:
            try:
                pdfs = [generate_admit_card(student_ids[0], api_client(), cache, settings, password=password,
                                            table_renderer=table_renderer, font_path=font_path)]
                failed = []
            except (HostelApiError, InvalidDocumentData) as e:
                pdfs, failed = [], [(student_ids[0], str(e))]
        else:
            result = generate_bulk_admit_cards(list(student_ids), api_client(), cache, settings,
                                               table_renderer=table_renderer, font_path=font_path)
            pdfs, failed = result.generated, result.failed

        for pdf in pdfs:
            path = _write_pdf(output_dir, pdf.filename, pdf.content)
            click.echo(f"✅ {path}")
        for student_id, error in failed:
            click.echo(f"❌ {student_id}: {error}")
        click.echo(f"{len(pdfs)} generated, {len(failed)} failed")

    @app.cli.command("receipt")
    @click.argument("payment_id")
    @click.option("--output-dir", default=None, help="Directory for the PDF (default: OUTPUT_DIR)")
    def receipt_command(payment_id, output_dir):
        """Generate the receipt for a payment"""
        output_dir = output_dir or current_app.config['OUTPUT_DIR']
        try:
            payment = api_client().get_payment(payment_id)
        except HostelApiError as e:
            click.echo(f"❌ Failed to load payment {payment_id}: {e}")
            return

        doc = compose_receipt(payment, generated_at=datetime.now(),
                              system_name=current_app.config.get('SYSTEM_NAME', DEFAULT_SYSTEM_NAME),
                              currency_symbol=current_app.config.get('CURRENCY_SYMBOL', '₹'),
                              display_timezone=current_app.config.get('DISPLAY_TIMEZONE'))
        if doc is None:
            click.echo("❌ Failed to generate receipt")
            return
        content = render_document(
            doc,
            table_renderer=select_table_renderer(current_app.config.get('PDF_TABLE_RENDERER')),
            font_path=current_app.config.get('PDF_FONT_PATH'),
        )
        click.echo(f"✅ {_write_pdf(output_dir, doc.filename, content)}")

    @app.cli.command("fee-overview")
    @click.argument("student_id")
    def fee_overview_command(student_id):
        """Show per-term fee status for a student"""
        api = api_client()
        settings = AdmitCardSettings.from_config(current_app.config)
        try:
            student = api.get_student(student_id)
            fee_structure = api.get_fee_structure(academic_year_for(student, settings),
                                                  category_for(student, settings))
            payments = api.list_payments(payment_type=PaymentTypeEnum.HOSTEL_FEE.value, student_id=student_id)
        except HostelApiError as e:
            click.echo(f"❌ Failed to load fee details: {e}")
            return

        payments = payments_for_student(payments, student)
        overview = build_fee_overview(fee_structure, student.fee_profile, payments)
        if not overview.structure_configured:
            click.echo(f"❌ {FEE_STRUCTURE_MISSING_MESSAGE}")
            return

        symbol = current_app.config.get('CURRENCY_SYMBOL', '₹')
        click.echo(f"📋 {student.name or student_id} ({student.roll_number or 'N/A'})")
        click.echo("-" * 60)
        for term in overview.terms:
            click.echo(f"  Term {term.term}: required {format_currency(term.required, symbol)}, "
                       f"paid {format_currency(term.paid, symbol)}, "
                       f"remaining {format_currency(term.remaining, symbol)} [{term.status.value}]")
        click.echo("-" * 60)
        click.echo(f"  Total: {format_currency(overview.total_fee, symbol)}  "
                   f"Paid: {format_currency(overview.paid_amount, symbol)}  "
                   f"Pending: {format_currency(overview.pending_amount, symbol)}")
