# fittrack/__init__.py

from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from sqlalchemy.exc import SQLAlchemyError

from config import Config

db = SQLAlchemy()
jwt = JWTManager()

API_ENDPOINTS = [
    "POST /api/auth/signup",
    "POST /api/auth/login",
    "POST /api/auth/google",
    "GET /api/auth/me",
    "GET /api/workouts",
    "POST /api/workouts",
    "GET /api/workouts/recent",
    "GET /api/workouts/<id>",
    "PUT /api/workouts/<id>",
    "DELETE /api/workouts/<id>",
    "POST /api/workouts/<id>/exercises",
    "DELETE /api/workouts/<id>/exercises/<exercise_id>",
    "GET /api/workouts/stats/summary",
    "GET /api/workouts/stats/popular-exercises",
    "GET /api/workouts/stats/categories",
    "GET /api/exercise-types",
    "GET /api/health",
]


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)

    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # -----------------------------
    # JWT error handlers
    # -----------------------------
    @jwt.unauthorized_loader
    def unauthorized_callback(reason):
        return (
            jsonify(
                {
                    "message": "Missing or invalid auth token",
                    "error": reason,
                }
            ),
            401,
        )

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return (
            jsonify(
                {
                    "message": "Invalid auth token",
                    "error": reason,
                }
            ),
            422,
        )

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"message": "Token has expired"}), 401

    # -----------------------------
    # Request logging
    # -----------------------------
    @app.before_request
    def log_api_request():
        if request.path.startswith("/api/"):
            app.logger.info(f"{request.method} {request.path}")

    # -----------------------------
    # IMPORT BLUEPRINTS (all routes)
    # -----------------------------
    from .routes.auth_routes import auth_bp
    from .routes.workout_routes import workouts_bp
    from .routes.stats_routes import stats_bp
    from .routes.exercise_routes import exercises_bp

    # -----------------------------
    # REGISTER BLUEPRINTS
    # -----------------------------
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(stats_bp, url_prefix="/api/workouts/stats")
    app.register_blueprint(workouts_bp, url_prefix="/api/workouts")
    app.register_blueprint(exercises_bp, url_prefix="/api/exercise-types")

    from .cli import assign_orphan_workouts_command

    app.cli.add_command(assign_orphan_workouts_command)

    @app.route("/api/health")
    def health():
        from .models.workout import Workout

        now = datetime.utcnow().isoformat()
        try:
            workout_count = db.session.query(Workout.id).count()
            last = Workout.query.order_by(Workout.day.desc()).first()
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error(f"Health check failed: {e}")
            return jsonify({"status": "unhealthy", "database": "disconnected", "timestamp": now}), 503

        return jsonify(
            {
                "status": "ok",
                "database": "connected",
                "timestamp": now,
                "workout_count": workout_count,
                "last_workout": last.to_summary_dict() if last else None,
            }
        ), 200

    # -----------------------------
    # JSON errors for the API
    # -----------------------------
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return (
                jsonify(
                    {
                        "message": "API endpoint not found",
                        "details": f"{request.method} {request.path} is not a valid API endpoint",
                        "available_endpoints": API_ENDPOINTS,
                    }
                ),
                404,
            )
        return e

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        return jsonify({"message": "Internal server error"}), 500

    # -----------------------------
    # DB init
    # -----------------------------
    with app.app_context():
        from .models import user, workout  # noqa: F401  register tables

        db.create_all()

    return app
