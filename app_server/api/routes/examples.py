"""Example Routes — hello and echo, the smallest GET and POST round trips.

Invariants:
    - Handlers are pure: no shared state, no configuration reads
    - A missing or empty echo message is rejected with 400 by the validation handler
"""

from fastapi import APIRouter, Query

from app_server.core.time_utils import current_time_string, current_timestamp
from app_server.schemas.api import EchoRequest, EchoResponse, HelloResponse

router = APIRouter(prefix="/api/v1", tags=["examples"])


@router.get("/hello", response_model=HelloResponse)
async def say_hello(name: str = Query("World", description="Who to greet")):
    return HelloResponse(message=f"Hello, {name}!", time=current_time_string())


@router.post("/echo", response_model=EchoResponse)
async def echo_message(body: EchoRequest):
    """Return the submitted message unchanged."""
    return EchoResponse(echo=body.message, timestamp=current_timestamp())
