"""
relay.py
--------
Pass-through relay for the detection service.

Forwards ``POST /api/upload`` to the upstream detector with the method and
body untouched, and hands back the upstream status and body as they are.

Every request header is forwarded except Host, Content-Length,
Transfer-Encoding and Connection. ``request.get_data()`` is already
de-chunked, so requests sets a fresh Content-Length for the outgoing body
and manages its own connection; passing the client's values on would
describe a body that is no longer on the wire.
"""
import logging

import requests
from flask import Blueprint, Response, current_app, jsonify, request

from . import config

logger = logging.getLogger(__name__)

relay = Blueprint("relay", __name__)

# Recomputed by the HTTP layer on both legs of the relay.
HOP_HEADERS = {"host", "content-length", "transfer-encoding", "connection"}


@relay.route("/api/upload", methods=["POST"])
def forward_upload():
    upstream = current_app.config.get("UPSTREAM_URL", config.UPSTREAM_URL)
    headers = {k: v for k, v in request.headers.items() if k.lower() not in HOP_HEADERS}
    try:
        response = requests.request(
            request.method,
            upstream,
            headers=headers,
            data=request.get_data(),
            timeout=config.ANALYSIS_TIMEOUT_SEC,
        )
    except requests.RequestException as e:
        logger.error("Proxy error: %s", e, exc_info=True)
        return jsonify({"error": "Could not reach backend"}), 500

    logger.info("Relayed upload to %s: %s", upstream, response.status_code)
    return Response(
        response.content,
        status=response.status_code,
        content_type=response.headers.get("Content-Type", "text/plain"),
    )
