"""Error handlers for the application."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from orgaccess.core.errors import RollbackFailure, ServiceError


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        """Render taxonomy errors with their own status code."""
        if isinstance(error, RollbackFailure):
            app.logger.error(
                "ROLLBACK_FAILURE orphaned_account_id=%s original=%r compensation=%r",
                error.orphaned_account_id, error.original, error.compensation_error,
            )
        elif error.status_code >= 500:
            app.logger.error(f"Upstream failure: {error}", exc_info=error)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        """Handle routing and protocol errors (404, 405, 413, ...)."""
        return jsonify({
            "success": False,
            "error": error.description,
            "code": error.name.upper().replace(" ", "_"),
        }), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # ALWAYS log the full error - logs are secure
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({
            "success": False,
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }), 500
