# main.py
"""
Hostel Fee Documents portal
Admit cards, payment receipts and fee overviews over the hostel backend API
"""

import os
import logging
from flask import Flask, jsonify

# --- local modules ---
from config import config
from hostel_api import HostelApiClient, FeeStructureCache
from cli_commands import register_cli_commands


def create_app(config_name: str = None) -> Flask:
    """Create the portal application"""
    app = Flask(__name__)
    config_name = config_name or os.environ.get('FLASK_CONFIG', 'default')
    app.config.from_object(config[config_name])

    # Logging
    logging.basicConfig(level=logging.DEBUG if app.config.get('DEBUG') else logging.INFO)
    logger = logging.getLogger(__name__)

    # Backend client and the fee structure cache live as long as this app
    app.extensions['hostel_api'] = HostelApiClient.from_config(app.config)
    app.extensions['fee_structure_cache'] = FeeStructureCache()

    # CLI
    register_cli_commands(app)

    # Fee document blueprint
    try:
        from fee_routes import register_fee_routes
        register_fee_routes(app)
        logger.info("✅ Fee documents blueprint registered")
    except Exception as e:
        logger.error(f"❌ Fee documents blueprint failed: {e}")
        raise

    @app.route("/_healthz")
    def healthz():
        return jsonify({'status': 'ok'})

    @app.errorhandler(404)
    def nf(_):
        return jsonify({'success': False, 'message': 'Not found'}), 404

    @app.errorhandler(500)
    def ie(_):
        return jsonify({'success': False, 'message': 'Internal error'}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, host="0.0.0.0", port=int(os.environ.get('PORT', 8000)))
