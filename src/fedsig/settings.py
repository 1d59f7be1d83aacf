"""Environment-backed settings primitives for :mod:`fedsig`."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .encoding import decode_base64
from .errors import DecodeError
from .keys import SigningKey

__all__ = ["FedsigSettings", "get_settings", "signing_key_from_settings"]


class FedsigSettings(BaseSettings):
    """Expose environment-derived configuration for the local signing key.

    All environment lookups go through this class. Every attribute defaults
    to ``None`` (or an inline default) when its variable is absent.

    Attributes:
        signing_key_seed: Unpadded base64 of the 32-byte ED25519 seed used to
            sign documents on behalf of :attr:`entity`.
        signing_key_id: Key identifier recorded next to produced signatures.
        entity: Name of the local signing party, for example a server name.
    """

    signing_key_seed: str | None = Field(
        default=None, alias="FEDSIG_SIGNING_KEY_SEED", repr=False
    )
    signing_key_id: str = Field(default="ed25519:auto", alias="FEDSIG_SIGNING_KEY_ID")
    entity: str | None = Field(default=None, alias="FEDSIG_ENTITY")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator("signing_key_seed", "entity", mode="before")
    @classmethod
    def _blank_as_none(cls, value: object) -> str | None:
        """Treat empty or whitespace-only variables as unset."""

        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("signing_key_id", mode="before")
    @classmethod
    def _strip_key_id(cls, value: object) -> str:
        """Trim surrounding whitespace, falling back to the default id."""

        if value is None:
            return "ed25519:auto"
        text = str(value).strip()
        return text or "ed25519:auto"

    @property
    def signing_configured(self) -> bool:
        """Return whether both a seed and an entity are configured."""

        return self.signing_key_seed is not None and self.entity is not None


def get_settings() -> FedsigSettings:
    """Return a :class:`FedsigSettings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return FedsigSettings()


def signing_key_from_settings(
    settings: FedsigSettings | None = None,
) -> SigningKey | None:
    """Build the local :class:`~fedsig.keys.SigningKey` from settings.

    Args:
        settings: Optional pre-instantiated settings. When omitted
            :func:`get_settings` is used.

    Returns:
        The signing key, or ``None`` when no seed or entity is configured.

    Raises:
        DecodeError: If the configured seed is not base64 of 32 bytes or the
            key id is malformed.
    """

    settings_obj = settings or get_settings()
    seed_text = settings_obj.signing_key_seed
    entity = settings_obj.entity
    if seed_text is None or entity is None:
        return None

    seed = decode_base64(seed_text)
    key = SigningKey.from_seed(seed, entity, settings_obj.signing_key_id)
    if key is None:
        raise DecodeError(f"signing key seed must be 32 bytes, got {len(seed)}")
    return key
