from flask import Flask, request, jsonify
from flask_cors import CORS
import os
import logging

from backend.ipn.config import Config
from backend.ipn.keepalive import KeepAlive
from backend.ipn.pipeline import IPNPipeline
from backend.ipn.responses import FAULT, ResponsePolicy
from backend.supabase_client import SupabaseRecorder


LIVENESS_TEXT = "IPN relay is running"


def configure_logging():
    # Setup Logging (file when LOG_FILE is set, stderr otherwise)
    log_file = os.environ.get('LOG_FILE')
    level = getattr(logging, os.environ.get('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    logging.basicConfig(
        filename=log_file,
        level=level,
        format='%(asctime)s %(levelname)s: %(message)s'
    )


def create_app(config: Config = None, recorder=None) -> Flask:
    """
    Build the relay app. Config and recorder are created once here and shared
    read-only by every request.
    """
    config = config or Config.from_env()
    if recorder is None:
        recorder = SupabaseRecorder.from_config(config)
    pipeline = IPNPipeline(config, recorder)
    policy = ResponsePolicy(config.response_shape)

    app = Flask(__name__)
    # Browsers only ever hit the liveness route; the IPN route is server-to-server
    CORS(app, resources={r"^/$": {"origins": list(config.cors_origins)}})

    def liveness():
        return LIVENESS_TEXT, 200, {"Content-Type": "text/plain; charset=utf-8"}

    def ipn():
        result = pipeline.process(request.headers, request.get_data(cache=False))
        return jsonify(result.body), result.status

    @app.errorhandler(500)
    def internal_error(e):
        logging.error(f"Unhandled error reached Flask: {e}")
        result = policy.respond(FAULT)
        return jsonify(result.body), result.status

    app.add_url_rule('/', 'liveness', liveness, methods=['GET'])
    for i, path in enumerate(config.ipn_paths):
        app.add_url_rule(path, f'ipn_{i}', ipn, methods=['POST'])

    logging.info(
        f"IPN relay configured: paths={list(config.ipn_paths)}, "
        f"schemes={list(config.schemes)}, table={config.table}"
    )
    return app


def main():
    configure_logging()
    logging.info("Server starting up...")
    config = Config.from_env()
    app = create_app(config)

    if config.keepalive_url:
        KeepAlive(config.keepalive_url, interval=config.keepalive_interval).start()

    app.run(host='0.0.0.0', port=config.port, debug=os.environ.get('FLASK_DEBUG', 'False') == 'True')


if __name__ == '__main__':
    main()
