from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.auth import current_member_id, staff_required
from ..container import Container
from ..core.enums import ScanStatus
from ..core.exceptions import StoreError, ValidationError
from .service import ScanOutcome

logger = logging.getLogger(__name__)

_HTTP_STATUS = {
    ScanStatus.ACCEPTED: 200,
    ScanStatus.INVALID_CODE: 400,
    ScanStatus.EXPIRED_CODE: 400,
    ScanStatus.MEMBERSHIP_INACTIVE: 403,
}


def _respond(outcome: ScanOutcome):
    return jsonify(outcome.as_dict()), _HTTP_STATUS[outcome.status]


def _decode_image(file_storage) -> str | None:
    from PIL import Image
    from pyzbar.pyzbar import decode as pyzbar_decode

    img = Image.open(file_storage.stream).convert("RGB")
    decoded = pyzbar_decode(img)
    if not decoded:
        return None
    return decoded[0].data.decode("utf-8").strip()


def register(app: Flask, container: Container) -> None:
    default_location = container.settings.default_location_id

    def _scan(code: str, data: dict):
        return container.access_service.process_scan(
            code,
            kind=data.get("kind", "entry"),
            staff_id=current_member_id(),
            location_id=data.get("location_id") or default_location,
        )

    @app.route("/api/access/scan", methods=["POST"], endpoint="access_scan")
    @staff_required
    def access_scan():
        """Operator submits a scanned code with the direction (entry/exit)."""
        data = request.get_json(silent=True) or {}
        code = str(data.get("code", "")).strip()
        if not code:
            return jsonify({"success": False, "message": "code is required"}), 400
        try:
            return _respond(_scan(code, data))
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except StoreError as e:
            logger.error("scan failed on store access (staff=%s): %s", session.get("member_id"), e)
            return jsonify({"success": False, "retryable": True, "message": "Temporary error, scan again"}), 503

    @app.route("/api/access/scan/image", methods=["POST"], endpoint="access_scan_image")
    @staff_required
    def access_scan_image():
        """Same as /api/access/scan but from an uploaded camera frame."""
        file = request.files.get("image")
        if file is None or not file.filename:
            return jsonify({"success": False, "message": "image is required"}), 400
        try:
            code = _decode_image(file)
        except (OSError, ValueError) as e:
            return jsonify({"success": False, "message": f"Unreadable image: {e}"}), 400
        if not code:
            return jsonify({"success": False, "message": "No code found in image"}), 400
        try:
            return _respond(_scan(code, request.form.to_dict()))
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except StoreError as e:
            logger.error("image scan failed on store access: %s", e)
            return jsonify({"success": False, "retryable": True, "message": "Temporary error, scan again"}), 503

    @app.route("/api/access/manual", methods=["POST"], endpoint="access_manual")
    @staff_required
    def access_manual():
        data = request.get_json(silent=True) or {}
        try:
            outcome = container.access_service.process_manual(
                str(data.get("member_id", "")),
                kind=data.get("kind", "entry"),
                staff_id=current_member_id(),
                location_id=data.get("location_id") or default_location,
            )
            return _respond(outcome)
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except StoreError as e:
            logger.error("manual entry failed on store access: %s", e)
            return jsonify({"success": False, "retryable": True, "message": "Temporary error, try again"}), 503
