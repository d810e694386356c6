"""JSON response class backed by orjson.

``ORJSONResponse`` is the default response class of the application, so
handler return values and error bodies are all serialized the same way:
orjson with sorted keys, which keeps bodies byte-stable for identical input.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ORJSONResponse(JSONResponse):
    """JSON response rendered by orjson with sorted keys.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Serialize ``content``; Pydantic models are dumped in JSON mode first.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json")

        return orjson.dumps(content, option=orjson.OPT_SORT_KEYS)
