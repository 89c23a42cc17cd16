"""Demo Flask application wired with the request interceptor."""

from flask import Flask, jsonify

from reqlog.config import Config, load_config
from reqlog.context import Context, create_context, read_stored_logs
from reqlog.errors import EmptyLogError, UnsupportedOperationError
from reqlog.interceptor import RequestInterceptor


def create_app(config: Config | None = None, context: Context | None = None) -> Flask:
    """Flask application factory."""
    app = Flask(__name__)

    if context is None:
        context = create_context(config or load_config())

    interceptor = RequestInterceptor(context)
    interceptor.init_app(app)

    # Store components on app for access in tests
    app.config["components"] = {
        "context": context,
        "interceptor": interceptor,
    }

    @app.route("/")
    def index():
        return jsonify({"message": "Hello from the request logger"})

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "backend": context.config.database_type.value,
            "written": interceptor.written,
            "failed": interceptor.failed,
        })

    @app.route("/api/logs")
    def stored_logs():
        try:
            records = read_stored_logs(context)
        except UnsupportedOperationError as exc:
            return jsonify({"error": str(exc)}), 400
        except EmptyLogError as exc:
            return jsonify({"error": str(exc)}), 404
        return jsonify([r.to_dict() for r in records])

    return app
