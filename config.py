"""
Configuration for the Hostel Fee Documents portal
"""

import os
import dotenv
dotenv.load_dotenv()  # Load environment variables from .env file

class Config:
    """Base configuration"""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'supersecretkey'

    # Hostel backend API (system of record for students, fees and payments)
    HOSTEL_API_BASE_URL = os.environ.get('HOSTEL_API_BASE_URL', 'http://localhost:5000')
    HOSTEL_API_TOKEN = os.environ.get('HOSTEL_API_TOKEN', '')
    HOSTEL_API_TIMEOUT = float(os.environ.get('HOSTEL_API_TIMEOUT', 10))

    # Institution branding on receipts and admit cards
    INSTITUTION_NAME = os.environ.get('INSTITUTION_NAME', 'Pydah Group Of Institutions')
    SYSTEM_NAME = os.environ.get('SYSTEM_NAME', 'PYDAH SOFT HOSTEL MANAGEMENT SYSTEM')
    LOGO_PATH = os.environ.get('LOGO_PATH', 'static/PYDAH_LOGO_PHOTO.jpg')
    LOGO_FALLBACK_TEXT = os.environ.get('LOGO_FALLBACK_TEXT', 'PYDAH GROUP')

    # Admit card settings
    DEFAULT_ACADEMIC_YEAR = os.environ.get('DEFAULT_ACADEMIC_YEAR', '2024-2025')
    DEFAULT_CATEGORY = os.environ.get('DEFAULT_CATEGORY', 'A')
    LATE_FEE_AMOUNT = int(os.environ.get('LATE_FEE_AMOUNT', 500))
    ADMIT_CARD_BULK_DELAY = float(os.environ.get('ADMIT_CARD_BULK_DELAY', 0.5))

    # PDF rendering
    PDF_TABLE_RENDERER = os.environ.get('PDF_TABLE_RENDERER', 'platypus')
    # NOTE: the built-in Helvetica has no rupee glyph, point this at a TTF that does
    PDF_FONT_PATH = os.environ.get('PDF_FONT_PATH', '')
    CURRENCY_SYMBOL = os.environ.get('CURRENCY_SYMBOL', '₹')
    # Backend timestamps are UTC, receipts show them in this zone
    DISPLAY_TIMEZONE = os.environ.get('DISPLAY_TIMEZONE', 'Asia/Kolkata')
    OUTPUT_DIR = os.environ.get('OUTPUT_DIR', 'static/pdfs')

    def api_headers(self) -> dict:
        """Headers sent with every backend request."""
        headers = {'Content-Type': 'application/json'}
        if self.HOSTEL_API_TOKEN:
            headers['Authorization'] = f"Bearer {self.HOSTEL_API_TOKEN}"
        return headers


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    HOSTEL_API_BASE_URL = 'http://hostel-api.test'
    ADMIT_CARD_BULK_DELAY = 0
    LOGO_PATH = ''


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
