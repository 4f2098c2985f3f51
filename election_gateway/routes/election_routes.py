from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from election_gateway.utils.chain import get_gateway
from election_gateway.utils.payload import request_fields

election_bp = Blueprint("elections", __name__)


@election_bp.post("/create_election")
def create_election():
    payload = request_fields(request)
    name = payload.get("name", payload.get("election_name"))

    result = get_gateway().create_election(
        name,
        start_time=payload.get("start_time"),
        end_time=payload.get("end_time"),
    )
    current_app.logger.info(
        "Election %s created in %s", result["created_election_id"], result["transaction_hash"]
    )
    return jsonify(result), 200


@election_bp.get("/election/<election_id>")
def get_election(election_id: str):
    election = get_gateway().get_election(election_id)
    return jsonify(election), 200
