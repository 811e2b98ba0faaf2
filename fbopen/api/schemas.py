"""
Pydantic schemas for the public response contract.
Each API version has its own record shape; the two never share
metadata field names.
"""

from pydantic import BaseModel, Field, model_validator
from typing import List


def _reject_keys(data, keys, version):
    if isinstance(data, dict):
        found = sorted(k for k in keys if k in data)
        if found:
            raise ValueError(f"{version} records must not carry {found}")
    return data


# v0 schemas
class V0Opp(BaseModel):
    """One opp in a v0 response. Source fields pass through as extras."""
    id: str
    score: float
    data_type: str

    class Config:
        extra = "allow"

    @model_validator(mode="before")
    @classmethod
    def no_v1_names(cls, data):
        return _reject_keys(data, ("_score", "_type"), "v0")


class V0OppsResponse(BaseModel):
    """Response from GET /v0/opps."""
    numFound: int = Field(..., ge=0)
    docs: List[V0Opp]


# v1 schemas
class V1Opp(BaseModel):
    """One opp in a v1 response (also the single-record body)."""
    id: str
    score: float = Field(..., alias="_score")
    record_type: str = Field(..., alias="_type")

    class Config:
        extra = "allow"

    @model_validator(mode="before")
    @classmethod
    def no_v0_names(cls, data):
        return _reject_keys(data, ("score", "data_type"), "v1")


class V1OppsResponse(BaseModel):
    """Response from GET /v1/opps."""
    numFound: int = Field(..., ge=0)
    docs: List[V1Opp]


class ErrorResponse(BaseModel):
    detail: str
