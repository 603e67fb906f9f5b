"""Development server for the codeduel API."""

import os

from flask import jsonify

from codeduel import create_app

app = create_app()


@app.route("/health")
def health_check():
    """Report liveness and whether the code executor is configured."""
    configured = bool(
        app.config.get("JDOODLE_CLIENT_ID") and app.config.get("JDOODLE_CLIENT_SECRET")
    )
    return jsonify({"status": "ok", "executorConfigured": configured}), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT") or 27272)
    app.run(debug=True, host="0.0.0.0", port=port)  # nosec
