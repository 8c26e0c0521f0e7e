"""
Response Shaper.

Every response body, paginated or not, success or failure, is wrapped in the
same envelope: `{statusCode, data, message, success}`.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, model_validator


class ApiResponse(BaseModel):
    """Uniform response envelope"""

    status_code: int = Field(serialization_alias="statusCode")
    data: Any = None
    message: str = "Success"
    success: bool = True

    @model_validator(mode="after")
    def _derive_success(self):
        self.success = self.status_code < 400
        return self

    def to_response(self, headers: Optional[dict] = None) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=jsonable_encoder(self.model_dump(by_alias=True)),
            headers=headers,
        )


def ok(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return ApiResponse(status_code=status_code, data=data, message=message).to_response()


def created(data: Any = None, message: str = "Created") -> JSONResponse:
    return ok(data, message, status_code=201)


def error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return ApiResponse(status_code=status_code, data=None, message=message).to_response(headers)
