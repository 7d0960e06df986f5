import logging
from typing import Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import settings
from gate import CaptchaGate

logger = logging.getLogger(__name__)


def _gate() -> CaptchaGate:
    return current_app.extensions["mathcap"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _user_id(data: dict) -> Optional[str]:
    user_id = data.get("userId") or request.args.get("userId")
    if user_id is None:
        return None
    user_id = str(user_id).strip()
    return user_id or None


def create_app(gate: Optional[CaptchaGate] = None) -> Flask:
    app = Flask(__name__)
    # One gate per process; its stores live as long as the app
    app.extensions["mathcap"] = gate if gate is not None else CaptchaGate()

    @app.route("/api/captcha", methods=["GET"])
    @app.route("/api/captcha/generate", methods=["POST"])
    def api_generate():
        data = _payload()
        user_id = _user_id(data)
        if not user_id:
            return jsonify({"error": "Missing userId."}), 400
        return jsonify(_gate().issue_challenge(user_id).to_dict())

    @app.route("/api/captcha/verify", methods=["POST"])
    def api_verify():
        data = _payload()
        user_id = _user_id(data)
        challenge_id = data.get("challengeId")
        if not user_id or not isinstance(challenge_id, str) or not challenge_id:
            return jsonify({"success": False, "error": "Missing userId or challengeId."}), 400

        answer = data.get("answer")
        if not isinstance(answer, str):
            answer = None
        return jsonify(_gate().verify_challenge(user_id, challenge_id, answer).to_dict())

    @app.route("/api/captcha/status/<user_id>", methods=["GET"])
    def api_status(user_id: str):
        return jsonify(_gate().get_status(user_id).to_dict())

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        return jsonify({"error": exc.name}), exc.code

    @app.errorhandler(Exception)
    def unhandled_error(exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "internal_error"}), 500

    return app


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    )
    gate = CaptchaGate()
    if settings.SWEEP_INTERVAL_S > 0:
        gate.store.start_sweeper(settings.SWEEP_INTERVAL_S)
    app = create_app(gate)
    app.run(host=settings.HOST, port=settings.PORT, debug=False)


if __name__ == "__main__":
    main()
