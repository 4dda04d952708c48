"""API Schemas — request bodies, response payloads and the response envelope.

Invariants:
    - EchoRequest.message is required and non-empty
    - Timestamps are integer Unix seconds
    - APIResponse omits unset optional keys when serialized (exclude_none)
"""

from typing import Any

from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """Uniform JSON wrapper: {success, message?, data?, error?, timestamp}."""
    success: bool
    message: str | None = None
    data: Any = None
    error: str | None = None
    timestamp: int


class HealthResponse(BaseModel):
    status: str
    timestamp: int
    service: str
    version: str


class AppInfoPayload(BaseModel):
    name: str
    version: str
    description: str
    author: str


class ServerInfoPayload(BaseModel):
    host: str
    port: int
    mode: str


class InfoResponse(BaseModel):
    """System information — application metadata plus listener settings."""
    app: AppInfoPayload
    server: ServerInfoPayload
    timestamp: int


class HelloResponse(BaseModel):
    message: str
    time: str


class EchoRequest(BaseModel):
    message: str = Field(min_length=1)


class EchoResponse(BaseModel):
    echo: str
    timestamp: int
