"""
Identifier validation endpoint.

POST /validate/{kind}: kind is one of: card, iban, national-id, cellphone.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.validation import VALIDATORS

router = APIRouter(prefix="/validate", tags=["validation"])


class ValidateRequest(BaseModel):
    value: Optional[str] = None


class ValidateResponse(BaseModel):
    kind: str
    valid: bool
    reason: str


@router.post("/{kind}", response_model=ValidateResponse)
async def validate(kind: str, body: ValidateRequest):
    validator = VALIDATORS.get(kind)
    if validator is None:
        raise HTTPException(status_code=404, detail=f"Unknown validator: {kind}")
    result = validator.validate(body.value)
    return ValidateResponse(kind=kind, valid=result.valid, reason=result.reason)
