from __future__ import annotations

import io

import qrcode
from flask import Flask, jsonify, send_file

from ..common.auth import current_member_id, login_required
from ..container import Container
from .model import RotationSnapshot


def _snapshot_json(s: RotationSnapshot) -> dict:
    return {
        "success": True,
        "member_id": s.member_id,
        "token": s.token,
        "seconds_until_refresh": s.seconds_until_refresh,
        "active": s.active,
    }


def render_qr_png(data: str) -> io.BytesIO:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def register(app: Flask, container: Container) -> None:
    @app.route("/api/access/code", methods=["POST"], endpoint="access_code_open")
    @login_required
    def access_code_open():
        """Member opens the "show my code" view: start rotating codes."""
        snapshot = container.rotations.open(current_member_id())
        return jsonify(_snapshot_json(snapshot)), 201

    @app.route("/api/access/code", methods=["GET"], endpoint="access_code_current")
    @login_required
    def access_code_current():
        snapshot = container.rotations.get(current_member_id())
        if snapshot is None or not snapshot.active:
            return jsonify({"success": False, "message": "No active code session"}), 404
        return jsonify(_snapshot_json(snapshot))

    @app.route("/api/access/code", methods=["DELETE"], endpoint="access_code_close")
    @login_required
    def access_code_close():
        closed = container.rotations.close(current_member_id())
        return jsonify({"success": closed})

    @app.route("/api/access/code/image", methods=["GET"], endpoint="access_code_image")
    @login_required
    def access_code_image():
        snapshot = container.rotations.get(current_member_id())
        if snapshot is None or not snapshot.token:
            return jsonify({"success": False, "message": "No active code session"}), 404
        return send_file(render_qr_png(snapshot.token), mimetype="image/png")
