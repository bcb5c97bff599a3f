"""
Fivetran function connector endpoint for Plausible Analytics.

Fivetran POSTs a JSON body on every sync step:
{
  "agent": str,           # not used
  "state": dict,          # state returned by the previous call, e.g. lastDateTime, lastOffset
  "secrets": {"plausibleApiKey": str, "siteId": str},
  "customPayload": dict,  # not used
  "setup_test": bool,     # true when triggered by "Test Connection"
  "sync_id": str          # not used
}
and keeps calling while the reply says hasMore.

Run locally with: flask --app main run
Deploy as a Google Cloud Function with entry point sync_with_plausible.
"""

import traceback
from typing import Optional, Tuple

from flask import Flask, jsonify, request

from fivetran_connector_sdk import Logging as log

from checkpoint import Checkpoint
from checkpoint_advancer import CheckpointAdvancer
from config import ConfigurationError, SyncConfig, credentials_from_secrets, load_config_from_env
from incremental_sync import run_sync_step
from plausible_client import PlausibleClient, UpstreamAPIError
from sync_planner import SyncPlanner
from timeseries import PRIMARY_KEY, TABLE_NAME


def handle_request(
    body: Optional[dict], config: SyncConfig, planner: Optional[SyncPlanner] = None
) -> Tuple[dict, int]:
    """
    Process one function connector request and return (reply, http_status).
    Every failure is converted into a structured error reply; no new state is returned with it.
    """
    try:
        body = body if isinstance(body, dict) else {}
        credentials = credentials_from_secrets(body.get("secrets"))
        client = PlausibleClient(credentials, config)
        planner = planner or SyncPlanner(config)

        if body.get("setup_test"):
            client.probe(planner.probe_request())
            return {"state": body.get("state") or {}, "insert": {}, "hasMore": False}, 200

        checkpoint = Checkpoint.from_state(body.get("state"))
        step = run_sync_step(client, planner, CheckpointAdvancer(config), checkpoint)

        reply = {
            "state": step.checkpoint.to_state(),
            "insert": {TABLE_NAME: step.rows()},
            "schema": {TABLE_NAME: {"primary_key": PRIMARY_KEY}},
            "hasMore": step.has_more,
        }
        return reply, 200

    except Exception as e:
        return error_reply(e)


def error_reply(error: Exception) -> Tuple[dict, int]:
    """Map an exception onto the error reply expected by Fivetran."""
    if isinstance(error, ConfigurationError):
        log.severe(f"Configuration error: {error}")
        return {"errorMessage": str(error), "errorType": "ConfigurationError"}, 400

    if isinstance(error, UpstreamAPIError):
        log.severe(f"{error}: {error.body}")
        return {
            "errorMessage": str(error),
            "errorType": "UpstreamAPIError",
            "stackTrace": [error.body],
        }, 500

    log.severe("Unexpected error", error)
    stack_trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return {
        "errorMessage": str(error) or repr(error),
        "errorType": "RuntimeError",
        "stackTrace": stack_trace.rstrip("\n").split("\n"),
    }, 500


def create_app(config: Optional[SyncConfig] = None, planner: Optional[SyncPlanner] = None) -> Flask:
    """Create the Flask app serving the function connector on POST /."""
    # The SDK runtime normally sets the log level; this endpoint runs outside of it
    if log.LOG_LEVEL is None:
        log.LOG_LEVEL = log.Level.INFO

    app = Flask(__name__)
    app.config["SYNC_CONFIG"] = config or load_config_from_env()

    @app.route("/", methods=["POST"])
    def sync():
        reply, status = handle_request(
            request.get_json(silent=True), app.config["SYNC_CONFIG"], planner
        )
        return jsonify(reply), status

    @app.route("/health")
    def health_check():
        return jsonify({"status": "healthy"})

    return app


def sync_with_plausible(http_request):
    """Google Cloud Functions entry point; http_request is a flask.Request."""
    if log.LOG_LEVEL is None:
        log.LOG_LEVEL = log.Level.INFO
    try:
        config = load_config_from_env()
    except ConfigurationError as e:
        reply, status = error_reply(e)
    else:
        reply, status = handle_request(http_request.get_json(silent=True), config)
    return jsonify(reply), status


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8080, debug=False)
