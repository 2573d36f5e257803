"""
JSON body validation against JSON Schema (draft 2020-12).

Endpoints listed in validation.schemas.ENDPOINT_SCHEMAS are checked before the
view runs. A mismatch returns HTTP 400 with the list of errors.
"""

from __future__ import annotations

from typing import Any, Dict, List

from flask import current_app, jsonify, request
from jsonschema import Draft202012Validator, ValidationError

from .schemas import ENDPOINT_SCHEMAS, SCHEMAS


class JSONSchemasValidator:
    """Compiles the named schemas once and validates payloads."""

    def __init__(self, schemas: Dict[str, Dict[str, Any]]):
        self._compiled: Dict[str, Draft202012Validator] = {
            name: Draft202012Validator(schema) for name, schema in schemas.items()
        }

    def validate(self, schema_key: str, data: Any) -> List[ValidationError]:
        validator = self._compiled.get(schema_key)
        if not validator:
            return []
        return sorted(validator.iter_errors(data), key=lambda e: list(e.path))


_validator = JSONSchemasValidator(SCHEMAS)


def _format_errors(errors: List[ValidationError]) -> List[Dict[str, Any]]:
    formatted: List[Dict[str, Any]] = []
    for e in errors:
        path = "/".join(map(str, e.path)) or "$"
        schema_path = "/".join(map(str, e.schema_path))
        formatted.append(
            {
                "path": path,
                "message": e.message,
                "validator": e.validator,
                "schema_path": schema_path,
            }
        )
    return formatted


def init_json_validation(app) -> None:
    """Register the before_request hook validating JSON bodies.

    Runs when:
    - (request.endpoint, request.method) is listed in ENDPOINT_SCHEMAS
    - the request carries JSON (request.get_json(silent=True) is not None)

    It is registered after the authentication gate, so protected endpoints
    are only validated for authenticated callers.
    """

    @app.before_request
    def _validate_json_before_view():  # noqa: ANN001
        endpoint = request.endpoint or ""
        method = request.method.upper()

        schema_key = ENDPOINT_SCHEMAS.get((endpoint, method))
        if not schema_key:
            return None

        data = request.get_json(silent=True)
        # No JSON body: the view reports it
        if data is None:
            return None

        errors = _validator.validate(schema_key, data)
        if errors:
            details = _format_errors(errors)
            current_app.logger.info(
                f"JSON schema '{schema_key}' rejected {method} {request.path}: "
                f"{[d['path'] for d in details]}"
            )
            return (
                jsonify(
                    {
                        "error": "Erreur de validation JSON",
                        "details": details,
                    }
                ),
                400,
            )
        return None
