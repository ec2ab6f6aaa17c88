import base64

from flask import jsonify


def ok(data=None, status=200, **meta):
    body = {"success": True, "data": data}
    if meta:
        body["meta"] = meta
    return jsonify(body), status


def fail(message="Requête invalide", status=400, code=None, detail=None, errors=None):
    error = {"message": message}
    error.update({k: v for k, v in (("code", code), ("detail", detail), ("errors", errors)) if v})
    return jsonify({"success": False, "error": error}), status


def file_payload(raw: bytes, filename: str, content_type: str, **extra):
    """Binary output for JSON clients: base64 data plus filename and content type."""
    return {
        "filename": filename,
        "contentType": content_type,
        "data": base64.b64encode(raw).decode("ascii"),
        **extra,
    }
