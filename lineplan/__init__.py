from flask import Flask, jsonify
from flask_cors import CORS

from lineplan.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(config_class=None):
    # Import config after dotenv is loaded
    from lineplan.config import get_config
    from lineplan.planning import planning_bp
    from lineplan.planning.routes import SESSION_EXTENSION
    from lineplan.planning.service import PlanningSessionService

    # Get the appropriate config class based on environment
    if config_class is None:
        config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(log_level=app.config.get("LOG_LEVEL", "INFO"), log_file=app.config.get("LOG_FILE"))

    # Log the environment being used
    logger.info(f"Starting application in {config_class.ENV} environment")

    # Get allowed origins from environment variable
    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    # Enable CORS for the planning frontend
    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    # The session service owns every process schedule for the lifetime of the app
    app.extensions[SESSION_EXTENSION] = PlanningSessionService.from_config(app.config)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "environment": config_class.ENV}), 200

    # Register blueprints
    app.register_blueprint(planning_bp, url_prefix="/planning")

    # Global error handler to ensure CORS headers are always included
    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle all exceptions and return them as JSON."""
        # Return JSON error response with proper status code
        if hasattr(e, 'code') and isinstance(e.code, int):
            status_code = e.code
        elif hasattr(e, 'status_code'):
            status_code = e.status_code
        else:
            status_code = 500

        if status_code >= 500:
            logger.error("Unhandled exception", error=str(e), exc_info=True)

        response = jsonify({
            "error": str(e),
            "message": "An error occurred processing your request"
        })
        response.status_code = status_code
        return response

    return app
