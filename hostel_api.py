"""
Hostel Backend API Client
Read-only access to the hostel management backend: students, fee structures,
temporary passwords and payment records.

Missing reference data (no fee structure, no temporary password) is reported as
None rather than raised, callers decide how to present it.
"""

import logging
import requests
from typing import Any, Callable, Dict, List, Optional

from fee_models import FeeStructure, PaymentRecord, StudentRecord

logger = logging.getLogger(__name__)

PAYMENTS_PAGE_SIZE = 100
MAX_PAYMENT_PAGES = 500


class HostelApiError(Exception):
    """Raised when the backend cannot be reached or rejects a required lookup"""
    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class HostelApiClient:
    """Thin wrapper over the backend REST endpoints used for fee documents"""

    def __init__(self, base_url: str, headers: Dict[str, str] = None, timeout: float = 10,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        if headers:
            self.session.headers.update(headers)

    @classmethod
    def from_config(cls, config) -> 'HostelApiClient':
        """Build a client from a Config object or a Flask config mapping"""
        if isinstance(config, dict):
            headers = {'Content-Type': 'application/json'}
            if config.get('HOSTEL_API_TOKEN'):
                headers['Authorization'] = f"Bearer {config['HOSTEL_API_TOKEN']}"
            return cls(config['HOSTEL_API_BASE_URL'], headers, config.get('HOSTEL_API_TIMEOUT', 10))
        return cls(config.HOSTEL_API_BASE_URL, config.api_headers(), config.HOSTEL_API_TIMEOUT)

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise HostelApiError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise HostelApiError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise HostelApiError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise HostelApiError(f"{method} {path} returned unexpected payload")
        return payload

    # ===== FEE STRUCTURES =====

    def get_fee_structure(self, academic_year: str, category: str) -> Optional[FeeStructure]:
        """Fee structure for (academic year, category), None when not configured"""
        try:
            payload = self._request('GET', f"/api/fee-structures/admit-card/{academic_year}/{category}")
        except HostelApiError as e:
            logger.error(f"Error fetching fee structure {academic_year}/{category}: {e}")
            return None

        data = payload.get('data')
        if not payload.get('success') or not isinstance(data, dict):
            logger.warning(f"No fee structure for {academic_year}/{category}: {payload.get('message')}")
            return None
        # The backend marks structures it substituted with zeros as not found
        if data.get('found') is False:
            logger.warning(f"Fee structure for {academic_year}/{category} marked as not found")
            return None
        return FeeStructure.from_api(data)

    # ===== STUDENTS =====

    def get_student(self, student_id: str) -> StudentRecord:
        """Full student record as prepared by the backend for admit cards"""
        payload = self._request('POST', f"/api/admin/students/{student_id}/admit-card")
        data = payload.get('data') or {}
        student = data.get('student') if isinstance(data, dict) else None
        if not payload.get('success') or not isinstance(student, dict):
            raise HostelApiError(payload.get('message') or f"Student {student_id} not found")
        return StudentRecord.from_api(student)

    def get_student_password(self, student_id: str) -> Optional[str]:
        """Temporary password for a recently added student, None if there is none"""
        try:
            payload = self._request('GET', f"/api/admin/students/{student_id}/temp-password")
        except HostelApiError as e:
            logger.error(f"Error fetching password for student {student_id}: {e}")
            return None
        data = payload.get('data') or {}
        if payload.get('success') and isinstance(data, dict) and data.get('password'):
            return str(data['password'])
        return None

    # ===== PAYMENTS =====

    def get_payment(self, payment_id: str) -> PaymentRecord:
        payload = self._request('GET', f"/api/payments/status/{payment_id}")
        data = payload.get('data')
        if isinstance(data, dict) and isinstance(data.get('payment'), dict):
            data = data['payment']
        if not payload.get('success') or not isinstance(data, dict):
            raise HostelApiError(payload.get('message') or f"Payment {payment_id} not found")
        return PaymentRecord.from_api(data)

    def list_payments(self, payment_type: str = None, search: str = None,
                      student_id: str = None, page_size: int = PAYMENTS_PAGE_SIZE) -> List[PaymentRecord]:
        """
        Every payment matching the filters, following the backend's pages.

        `student_id` is passed along as a hint only; callers that need one
        student's payments must still filter on PaymentRecord.student_id.
        """
        params = {'limit': page_size}
        if payment_type:
            params['paymentType'] = payment_type
        if search:
            params['search'] = search
        if student_id:
            params['studentId'] = student_id

        payments = []
        page = 1
        while page <= MAX_PAYMENT_PAGES:
            payload = self._request('GET', '/api/payments/all', params=dict(params, page=page))
            if not payload.get('success'):
                raise HostelApiError(payload.get('message') or 'Failed to fetch payments')
            data = payload.get('data') or {}
            rows = data.get('payments', []) if isinstance(data, dict) else data
            rows = [row for row in rows or [] if isinstance(row, dict)]
            payments.extend(PaymentRecord.from_api(row) for row in rows)

            pagination = data.get('pagination') if isinstance(data, dict) else None
            if not rows or not isinstance(pagination, dict) or not pagination.get('hasNext'):
                break
            page += 1
        else:
            logger.warning(f"Stopped fetching payments after {MAX_PAYMENT_PAGES} pages")
        return payments


class FeeStructureCache:
    """
    Read-through cache of fee structures keyed by "<academicYear>-<category>".

    Lives as long as its owner (one app instance or one CLI run). Entries are
    never invalidated; reference fee data does not change within a session.
    Lookups that return None are not cached.
    """

    def __init__(self):
        self._entries: Dict[str, FeeStructure] = {}

    @staticmethod
    def cache_key(academic_year: str, category: str) -> str:
        return f"{academic_year}-{category}"

    def get(self, academic_year: str, category: str,
            loader: Callable[[str, str], Optional[FeeStructure]]) -> Optional[FeeStructure]:
        key = self.cache_key(academic_year, category)
        if key in self._entries:
            logger.debug(f"Using cached fee structure for: {key}")
            return self._entries[key]
        fee_structure = loader(academic_year, category)
        if fee_structure is not None:
            self._entries[key] = fee_structure
        return fee_structure

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
