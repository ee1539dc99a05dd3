"""SPARQL proxy routes: /api/sparql/*."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from rdfscout.backend.services.sparql_service import SparqlService

sparql_bp = Blueprint("sparql", __name__)


@sparql_bp.route("/query", methods=["POST"])
def proxy_query():
    """Proxy a SPARQL query to a remote endpoint.

    Solves CORS by making the request server-side.  Unless ``labels``
    is false, every URI cell of the result carries its label.
    """
    data = request.get_json(force=True, silent=True) or {}
    query = data.get("query", "")
    endpoint = data.get("endpoint", "")
    method = data.get("method", "GET")
    labels = bool(data.get("labels", True))
    timeout = min(
        data.get("timeout", 30),
        current_app.config.get("SPARQL_TIMEOUT", 30),
    )

    if not query or not endpoint:
        return jsonify({"error": "Missing 'query' or 'endpoint'"}), 400

    svc = SparqlService(
        executor=current_app.config.get("EXECUTOR"),
        ttl=current_app.config.get("CACHE_TTL", 0),
    )
    result = svc.execute(
        query=query,
        endpoint=endpoint,
        method=method,
        timeout=timeout,
        labels=labels,
    )
    return jsonify(result.model_dump())
