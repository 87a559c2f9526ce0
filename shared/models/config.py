from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single engine-specific environment setting a client needs.

    Attributes:
        env_key (str): The raw key; the client prefixes it, e.g. "BASE_URL" → "RAG_QDRANT_BASE_URL".
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Fallback value. None marks the key as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
