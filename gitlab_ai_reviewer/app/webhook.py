from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from flask.typing import ResponseReturnValue

from gitlab_ai_reviewer.app.config import AppSettings
from gitlab_ai_reviewer.app.orchestrator import WebhookOrchestrator


logger = logging.getLogger(__name__)

ACK_BODY = {"status": "ok", "message": "Processing started"}


def register_webhook_routes(
    app: Flask,
    *,
    settings: AppSettings,
    orchestrator: WebhookOrchestrator,
) -> None:
    @app.route("/webhook/gitlab-mr", methods=["POST"])
    def gitlab_merge_request_webhook() -> ResponseReturnValue:
        secret = settings.gitlab_webhook_secret_token
        if secret and request.headers.get("X-Gitlab-Token") != secret:
            logger.warning("Unauthorized webhook request: invalid X-Gitlab-Token")
            return "Unauthorized", 403

        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            logger.warning("Ignoring webhook body that is not a JSON object")
            payload = {}
        logger.info("Received webhook: object_kind=%s", payload.get("object_kind"))

        try:
            orchestrator.handle_merge_request_event(payload)
        except Exception:  # noqa: BLE001 - the sender only ever gets the ack
            logger.exception("Webhook handler error")

        return jsonify(ACK_BODY), 200

    @app.route("/health", methods=["GET"])
    def health() -> ResponseReturnValue:
        return jsonify({"status": "ok"}), 200
