from __future__ import annotations

import logging

from flask import Flask, jsonify

from portal.config import configure_logging
from portal.routes import portal_bp

configure_logging()

app = Flask(__name__)
app.json.sort_keys = False
app.register_blueprint(portal_bp)

logger = logging.getLogger("portal.app")


@app.get("/api/health")
def health():
    return jsonify({"ok": True})


@app.errorhandler(404)
def not_found(_exc):
    return jsonify({"error": "Not found."}), 404


@app.errorhandler(405)
def method_not_allowed(_exc):
    return jsonify({"error": "Method not allowed."}), 405


@app.errorhandler(500)
def internal_error(exc):
    logger.error("Unhandled error: %s", exc)
    return jsonify({"error": "Internal server error."}), 500


if __name__ == "__main__":
    app.run(debug=True)
