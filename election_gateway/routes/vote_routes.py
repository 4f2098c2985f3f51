from __future__ import annotations

from flask import Blueprint, jsonify, request

from election_gateway.utils.chain import get_gateway
from election_gateway.utils.payload import request_fields

vote_bp = Blueprint("votes", __name__)


@vote_bp.post("/vote")
def submit_vote():
    payload = request_fields(request)
    result = get_gateway().cast_vote(
        payload.get("election_id"),
        payload.get("candidate_id"),
        payload.get("voter_identity"),
    )
    return jsonify(result), 200
