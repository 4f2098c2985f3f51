import os
import logging
from typing import Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from election_gateway.routes.candidate_routes import candidate_bp
from election_gateway.routes.election_routes import election_bp
from election_gateway.routes.vote_routes import vote_bp
from election_gateway.services.errors import GatewayError, TransactionFailed
from election_gateway.utils.chain import GATEWAY_EXTENSION, build_contract_client, build_gateway


def create_app(contract_client=None, config: Optional[Mapping] = None) -> Flask:
    """Application factory used by Flask CLI and tests.

    Tests pass a ``contract_client`` double; otherwise one is built from the
    RPC settings in the environment.
    """
    load_dotenv()
    app = Flask(__name__)
    app.config.update(load_settings())
    if config:
        app.config.update(config)

    configure_logging(app.config["LOG_LEVEL"])

    if contract_client is None:
        contract_client = build_contract_client(app.config)
    app.extensions[GATEWAY_EXTENSION] = build_gateway(contract_client, app.config)

    CORS(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}})

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"}), 200

    register_blueprints(app)
    register_error_handlers(app)

    return app


def load_settings() -> dict:
    chain_id = os.getenv("CHAIN_ID", "")
    return {
        "RPC_URL": os.getenv("RPC_URL"),
        "CONTRACT_ADDRESS": os.getenv("CONTRACT_ADDRESS"),
        "ABI_PATH": os.getenv("ABI_PATH"),
        "PRIVATE_KEY": os.getenv("PRIVATE_KEY"),
        "ACCOUNT_ADDRESS": os.getenv("ACCOUNT_ADDRESS"),
        "CHAIN_ID": int(chain_id) if chain_id.isdigit() else None,
        "ELECTION_START_LEAD_SECONDS": int(os.getenv("ELECTION_START_LEAD_SECONDS", "120")),
        "ELECTION_DURATION_SECONDS": int(os.getenv("ELECTION_DURATION_SECONDS", "7200")),
        "CANDIDATE_ID_SOURCE": os.getenv("CANDIDATE_ID_SOURCE", "auto"),
        "CANDIDATE_ADDED_EVENT": os.getenv("CANDIDATE_ADDED_EVENT", "CandidateAdded"),
        "TX_RECEIPT_TIMEOUT": float(os.getenv("TX_RECEIPT_TIMEOUT", "120")),
        "TX_GAS_LIMIT": int(os.getenv("TX_GAS_LIMIT", "500000")),
        "RPC_CONNECT_ATTEMPTS": int(os.getenv("RPC_CONNECT_ATTEMPTS", "10")),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
        "CORS_ORIGINS": os.getenv("CORS_ORIGINS", "*"),
    }


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(election_bp)
    app.register_blueprint(candidate_bp)
    app.register_blueprint(vote_bp)


def configure_logging(log_level: str = "INFO") -> None:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(GatewayError)
    def gateway_error(error: GatewayError):
        if isinstance(error, TransactionFailed) and error.transaction_hash:
            app.logger.warning("%s (tx %s)", error.message, error.transaction_hash)
        else:
            app.logger.info("Request failed: %s", error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception):
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.getenv("PORT", "3000")), threaded=True)
