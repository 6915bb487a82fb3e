"""Base model configuration for host event payloads."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration.

    Events are immutable once received from the host.
    """

    model_config = ConfigDict(frozen=True)
