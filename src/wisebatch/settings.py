"""
Environment-driven configuration for the PassiveTotal coalescer.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

from wisebatch.enums import TransportErrorPolicy
from wisebatch.exceptions import MissingCredentialsError

DEFAULT_BATCH_SIZE = 25
DEFAULT_FLUSH_INTERVAL_SECONDS = 0.5
DEFAULT_BASE_URL = "https://api.passivetotal.org"


class PassiveTotalSettings(BaseModel):
    user: str
    key: SecretStr
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = Field(default=30.0, gt=0)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    flush_interval_seconds: float = Field(default=DEFAULT_FLUSH_INTERVAL_SECONDS, gt=0)
    transport_error_policy: TransportErrorPolicy = TransportErrorPolicy.error

    @classmethod
    def from_env(cls, **overrides) -> "PassiveTotalSettings":
        """
        Build settings from environment variables (and a ``.env`` file, if any).

        Parameters
        ----------
        **overrides
            Values taking precedence over the environment.

        Returns
        -------
        PassiveTotalSettings
            Validated settings.

        Raises
        ------
        MissingCredentialsError
            If the API key or user is not configured.
        """
        load_dotenv()
        values = {
            "user": os.getenv("PASSIVETOTAL_USER"),
            "key": os.getenv("PASSIVETOTAL_KEY"),
            "base_url": os.getenv("PASSIVETOTAL_BASE_URL"),
            "timeout_seconds": os.getenv("PASSIVETOTAL_TIMEOUT_SECONDS"),
            "batch_size": os.getenv("WISEBATCH_BATCH_SIZE"),
            "flush_interval_seconds": os.getenv("WISEBATCH_FLUSH_INTERVAL_SECONDS"),
            "transport_error_policy": os.getenv("WISEBATCH_TRANSPORT_ERROR_POLICY"),
        }
        values.update(overrides)
        if not values["key"]:
            raise MissingCredentialsError(
                "PassiveTotal API key not found. Set PASSIVETOTAL_KEY in the environment or provide it through the key parameter."
            )
        if not values["user"]:
            raise MissingCredentialsError(
                "PassiveTotal API user not found. Set PASSIVETOTAL_USER in the environment or provide it through the user parameter."
            )
        return cls.model_validate(
            {name: value for name, value in values.items() if value not in (None, "")}
        )
