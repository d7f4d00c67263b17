import logging
import uuid

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect

from app.framecamp.config import load_config
from app.framecamp.db import init_db, teardown_db_session
from app.framecamp.routes import bp as routes_bp
from app.framecamp.modules.campaigns.api import bp as campaigns_bp
from app.framecamp.modules.compositor.api import bp as compositor_bp
from app.framecamp.modules.payments.api import bp as payments_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False

    CORS(app, resources={r"/api/*": {"origins": "*"}}, send_wildcard=True)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("MP_ACCESS_TOKEN"):
            app.logger.error("PAYMENT CONFIG ERROR: MP_ACCESS_TOKEN is not set; campaign checkout will fail.")
        if not app.config.get("ADMIN_PASSWORD"):
            app.logger.error("ADMIN CONFIG ERROR: ADMIN_PASSWORD is not set; campaign deletion is disabled.")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage health check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = []
        for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
            if not app.config.get(key):
                missing_s3.append(key)
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(campaigns_bp, url_prefix="/api")
    app.register_blueprint(compositor_bp, url_prefix="/api")
    app.register_blueprint(payments_bp, url_prefix="/api")

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    app.teardown_appcontext(teardown_db_session)

    # Schema health (lean): detect a database that was never migrated.
    try:
        insp = sa_inspect(app.extensions["sqlalchemy_engine"])
        if not insp.has_table("campaigns"):
            app.logger.warning("DB schema missing table 'campaigns'; run `alembic upgrade head`.")
    except Exception as e:
        app.logger.error("Schema health check failed: %s", e)

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return jsonify({"error": "Request too large. Maximum size is 50MB."}), 413

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
