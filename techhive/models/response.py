"""Standard JSON response envelope."""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from techhive.models.user import CamelModel


class ApiResponse(CamelModel):
    """Envelope wrapping every JSON response.

    Endpoint-specific extras (``count``, ``filters``, ``errors``...) are
    accepted as additional top-level keys and serialized unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None
    timestamp: datetime
    request_id: Optional[str] = None
