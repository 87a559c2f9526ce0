from pydantic import BaseModel


class IngestReport(BaseModel):
    """Summary of a directory ingestion run.

    Attributes:
        processed: Files embedded and stored.
        skipped:   Files with an empty body; their previously stored point is removed.
        failed:    Names of files that could not be read, embedded or stored.
    """

    processed: int = 0
    skipped: int = 0
    failed: list[str] = []
