"""
Pydantic models for request bodies and query strings.

Routes call Model.model_validate(...) and let ValidationError propagate;
the error envelope turns it into 400 INVALID_PARAMS.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# "city:austin-tx,county:travis-county-tx" (bare slugs allowed)
_SCOPE_PATTERN = re.compile(r'^[A-Za-z0-9_\-:, ]+$')


class BaseParamsModel(BaseModel):
    """
    Base model for all API param schemas.

    - Frozen after creation
    - Whitespace stripped from strings
    - Both alias and field name accepted
    - Unknown fields ignored
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='ignore',
    )


class ScopedParams(BaseParamsModel):
    scope: Optional[str] = Field(default=None, max_length=2000)

    @field_validator('scope', mode='after')
    @classmethod
    def validate_scope(cls, v):
        """Blank means "use the default scope"; otherwise restrict the alphabet."""
        if v is None or v == '':
            return None
        if not _SCOPE_PATTERN.match(v):
            raise ValueError("scope must be comma-separated kind:slug tokens")
        return v


class RefreshRequest(ScopedParams):
    session_id: Optional[str] = Field(default=None, alias='sessionID', max_length=120)

    @field_validator('session_id', mode='after')
    @classmethod
    def blank_session_is_none(cls, v):
        return v or None


class ScopeRunRequest(ScopedParams):
    pass


class FreshnessQuery(ScopedParams):
    pass
