# Overview: JSON envelope helpers ({success, data, message, meta} / {success: false, message, errors}).

from __future__ import annotations

from typing import Any

from flask import jsonify


def success(data: Any = None, *, message: str | None = None, status: int = 200, meta: dict | None = None):
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    if meta is not None:
        body["meta"] = meta
    return jsonify(body), status


def failure(message: str, status: int = 400, *, errors: list | None = None):
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status
