"""Line-delimited JSON request/response codec.

Request::

    {"id": "1", "command": "get_definition", "params": {"symbol": "Foo"}}

Response::

    {"id": "1", "status": "success", "payload": [...]}
    {"id": "1", "status": "error", "error": {"message": "...", "details": "..."}}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from tagbridge.exceptions import MalformedRequest

INVALID_REQUEST_MESSAGE = "Invalid JSON request."

# Required params per command: (name, may_be_empty)
COMMAND_PARAMS: dict[str, tuple[tuple[str, bool], ...]] = {
    "get_definition": (("symbol", False),),
    "get_references": (("symbol", False),),
    "list_symbols_with_prefix": (("prefix", True),),
    "search_pattern": (("pattern", False),),
}


@dataclass
class Request:
    """A decoded request.

    Attributes:
        id: Opaque request identifier, echoed back unchanged.
        command: Name of the command to run.
        params: Command parameters.
    """

    id: str
    command: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Response:
    """A response ready to be written to the wire.

    Exactly one of ``payload`` and ``error`` is serialized, chosen by ``status``.
    """

    id: str | None
    status: str
    payload: Any = None
    error: dict[str, str] | None = None

    @classmethod
    def success(cls, request_id: str, payload: Any) -> Response:
        return cls(id=request_id, status="success", payload=payload)

    @classmethod
    def failure(
        cls, request_id: str | None, message: str, details: str | None = None
    ) -> Response:
        error = {"message": message}
        if details:
            error["details"] = details
        return cls(id=request_id, status="error", error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "status": self.status}
        if self.status == "success":
            data["payload"] = self.payload
        else:
            data["error"] = self.error or {"message": ""}
        return data


def decode_request(line: bytes | str) -> Request:
    """Decode and validate one request line.

    Args:
        line: Raw line, with or without its trailing newline.

    Returns:
        The validated Request.

    Raises:
        MalformedRequest: If the line is not a valid request. ``request_id``
            is set whenever the line carried a usable string id.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRequest(
                INVALID_REQUEST_MESSAGE, f"Line is not valid UTF-8: {exc}"
            ) from exc

    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise MalformedRequest(INVALID_REQUEST_MESSAGE, str(exc)) from exc

    if not isinstance(data, dict):
        raise MalformedRequest(INVALID_REQUEST_MESSAGE, "Request must be a JSON object.")

    raw_id = data.get("id")
    request_id = raw_id if isinstance(raw_id, str) and raw_id else None
    command = data.get("command")
    if request_id is None or not isinstance(command, str) or not command:
        raise MalformedRequest(
            INVALID_REQUEST_MESSAGE,
            "Request must include 'id' and 'command' fields.",
            request_id=request_id,
        )

    params = data.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise MalformedRequest(
            INVALID_REQUEST_MESSAGE, "'params' must be a JSON object.", request_id=request_id
        )

    validate_params(command, params, request_id)
    return Request(id=request_id, command=command, params=params)


def encode_response(response: Response) -> bytes:
    """Serialize a response as one newline-terminated UTF-8 line."""
    text = json.dumps(response.to_dict(), separators=(",", ":"), ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def validate_params(
    command: str, params: dict[str, Any], request_id: str | None = None
) -> None:
    """Check required params of known commands; unknown ones are left to the dispatcher.

    Raises:
        MalformedRequest: If a required param is missing or unusable.
    """
    for name, may_be_empty in COMMAND_PARAMS.get(command, ()):
        value = params.get(name)
        if not isinstance(value, str):
            raise MalformedRequest(
                f"Missing required string parameter '{name}' for {command}.",
                request_id=request_id,
            )
        if not value and not may_be_empty:
            raise MalformedRequest(
                f"Parameter '{name}' for {command} must not be empty.",
                request_id=request_id,
            )
