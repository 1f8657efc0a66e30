# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Map CRUD exceptions to transport-level status codes and error bodies.

The engine has no web layer of its own; a controller catching a
:class:`~flycrud.kernel.exceptions.FlyCrudException` uses these helpers to
answer consistently::

    try:
        user = await users.update(user_id, dto)
    except FlyCrudException as exc:
        return JSONResponse(error_body(exc), status_code=status_for(exc))
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from flycrud.kernel.exceptions import (
    BulkOperationException,
    BusinessException,
    ConflictException,
    DataIntegrityException,
    FlyCrudException,
    InvalidRequestException,
    OperationNotSupportedException,
    ResourceNotFoundException,
    ValidationException,
)

# Exception -> HTTP status code mapping (most specific first)
_STATUS_MAP: dict[type, int] = {
    ResourceNotFoundException: 404,
    BulkOperationException: 207,
    ValidationException: 400,
    OperationNotSupportedException: 400,
    InvalidRequestException: 400,
    ConflictException: 409,
    DataIntegrityException: 409,
    # Catch-all
    BusinessException: 400,
}


def status_for(exc: BaseException) -> int:
    """Map an exception to an HTTP status code."""
    for exc_type, status in _STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return status
    return 500


def error_body(exc: BaseException) -> dict[str, Any]:
    """Build a structured error body for ``exc``.

    Unknown exceptions are reported as a generic internal error so driver
    messages never leak to callers.
    """
    timestamp = datetime.now(UTC).isoformat()
    status = status_for(exc)

    if not isinstance(exc, FlyCrudException):
        return {
            "error": {
                "message": "Internal server error",
                "code": "INTERNAL_ERROR",
                "status": status,
                "timestamp": timestamp,
            }
        }

    body: dict[str, Any] = {
        "error": {
            "message": str(exc),
            "code": exc.code or type(exc).__name__,
            "status": status,
            "timestamp": timestamp,
        }
    }
    if exc.context:
        body["error"]["context"] = exc.context
    if isinstance(exc, BulkOperationException):
        body["error"]["errors"] = [item.to_dict() for item in exc.errors]
    return body
