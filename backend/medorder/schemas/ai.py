from pydantic import BaseModel
from typing import Any, Optional


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None
    context: Optional[Any] = None


class GenerateResponse(BaseModel):
    text: str
