"""Endpoint data routes: /api/data/*."""

from __future__ import annotations

import logging

from flask import Blueprint, abort, current_app, jsonify, request

from rdfscout.backend.services.data_service import KINDS, DataService

logger = logging.getLogger(__name__)

data_bp = Blueprint("data", __name__)

ENDPOINT_HEADER = "X-Sparql-Endpoint"


def _get_svc() -> DataService:
    return DataService(current_app.config, executor=current_app.config.get("EXECUTOR"))


@data_bp.route("/<name>", methods=["GET"])
def get_data(name: str):
    """Return the ``vars``, ``properties`` or ``nodes`` of an endpoint.

    The endpoint comes from the ``X-Sparql-Endpoint`` header; ``nodes``
    also accepts a ``?filter=`` substring.
    """
    if name not in KINDS:
        abort(404)

    endpoint = request.headers.get(ENDPOINT_HEADER, "").strip()
    if not endpoint:
        return jsonify({"error": f"Missing '{ENDPOINT_HEADER}' header"}), 400

    filter_text = request.args.get("filter") if name == "nodes" else None
    logger.info("GET %s for %s", name, endpoint)
    return jsonify(_get_svc().get(name, endpoint, filter_text))
