from typing import Any

from pydantic import BaseModel, StrictInt, StrictStr


class EmbedRequest(BaseModel):
    """Body of POST /embed."""

    id: StrictInt | StrictStr
    text: str
    metadata: dict[str, Any] | None = None
