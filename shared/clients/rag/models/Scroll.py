from pydantic import BaseModel

from shared.models.document import StoredPoint


class ScrollResult(BaseModel):
    """Structured output of a single scroll page.

    Attributes:
        result:           Points returned by the scroll.
        next_page_offset: Cursor for the next page, or None when all pages
                          have been consumed.
    """

    result: list[StoredPoint]
    next_page_offset: str | int | None = None
