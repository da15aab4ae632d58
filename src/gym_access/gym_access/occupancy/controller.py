from __future__ import annotations

import json
import queue

from flask import Flask, Response, jsonify, stream_with_context

from ..common.auth import login_required
from ..container import Container
from ..core.exceptions import StoreError
from .model import OccupancyState

KEEPALIVE_SECONDS = 15


def _sse(state: OccupancyState) -> str:
    return f"event: occupancy\ndata: {json.dumps(state.as_dict())}\n\n"


def register(app: Flask, container: Container) -> None:
    counter = container.occupancy_counter

    @app.route("/api/occupancy", endpoint="occupancy_default")
    @app.route("/api/occupancy/<location_id>", endpoint="occupancy_current")
    @login_required
    def occupancy_current(location_id: str | None = None):
        try:
            state = counter.current(location_id or container.settings.default_location_id)
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503
        return jsonify(state.as_dict())

    @app.route("/api/occupancy/<location_id>/stream", endpoint="occupancy_stream")
    @login_required
    def occupancy_stream(location_id: str):
        """Server-sent events: the current value first, then one event per write."""
        updates: "queue.Queue[OccupancyState]" = queue.Queue()
        try:
            initial = counter.current(location_id)
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503
        unsubscribe = counter.subscribe(location_id, updates.put)

        def generate():
            try:
                yield _sse(initial)
                while True:
                    try:
                        yield _sse(updates.get(timeout=KEEPALIVE_SECONDS))
                    except queue.Empty:
                        yield ": keepalive\n\n"
            finally:
                unsubscribe()

        return Response(stream_with_context(generate()), mimetype="text/event-stream")
