from pydantic import BaseModel
from typing import Any, Optional

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int
    has_next_page: bool
    has_prev_page: bool

def success(data: Any = None, message: Optional[str] = None) -> dict:
    """Standard success envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body

def failure(message: str, error: Any = None) -> dict:
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body
