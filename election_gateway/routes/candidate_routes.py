from __future__ import annotations

from flask import Blueprint, jsonify, request

from election_gateway.utils.chain import get_gateway
from election_gateway.utils.payload import request_fields

candidate_bp = Blueprint("candidates", __name__)


@candidate_bp.post("/add_candidate")
def add_candidate():
    payload = request_fields(request)
    result = get_gateway().add_candidate(
        payload.get("election_id"), payload.get("candidate_name")
    )
    return jsonify(result), 200


@candidate_bp.route("/get_candidate", methods=["GET", "POST"])
def get_candidate():
    payload = request_fields(request)
    candidate = get_gateway().get_candidate(
        payload.get("election_id"), payload.get("candidate_id")
    )
    return jsonify(candidate), 200
