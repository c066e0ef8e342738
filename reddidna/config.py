"""Immutable runtime settings, loaded once at start-up.

Environment variables (a ``.env`` file is honoured by the CLI):
  REDDIDNA_API_BASE_URL     base address of the persona service
  REDDIDNA_TIMEOUT          request timeout in seconds
  REDDIDNA_STRICT_IDENTITY  "1"/"true" to only accept reddit.com/user/<name> URLs
"""
import os
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "http://127.0.0.1:5000"
# Persona generation routinely takes minutes on the service side.
DEFAULT_TIMEOUT = 600.0


@dataclass(frozen=True)
class LoadingStep:
    message: str
    image: str
    duration: int  # seconds


LOADING_STEPS: tuple[LoadingStep, ...] = (
    LoadingStep(
        message="Good things take time. Cooking the perfect persona report...",
        image="https://media3.giphy.com/media/8cG6zdMFPB7ag/giphy.gif",
        duration=150,
    ),
    LoadingStep(
        message="Looks like you've got a fascinating account! Analyzing deep archives...",
        image="https://media.giphy.com/media/jSEsCWf9kXazGN9Bft/giphy.gif",
        duration=120,
    ),
    LoadingStep(
        message="Just a few more moments. The results are worth the wait!",
        image="https://media4.giphy.com/media/QBd2kLB5qDmysEXre9/giphy.gif",
        duration=120,
    ),
)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    tick_interval: float = 1.0
    strict_identity: bool = False
    loading_steps: tuple[LoadingStep, ...] = field(default=LOADING_STEPS)

    def __post_init__(self) -> None:
        if not self.loading_steps:
            raise ValueError("loading_steps must contain at least one step")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from REDDIDNA_* env vars; keyword overrides win when not None."""
        values: dict = {
            "base_url": os.getenv("REDDIDNA_API_BASE_URL") or DEFAULT_BASE_URL,
            "timeout": float(os.getenv("REDDIDNA_TIMEOUT") or DEFAULT_TIMEOUT),
            "strict_identity": os.getenv("REDDIDNA_STRICT_IDENTITY", "").strip().lower() in _TRUTHY,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
