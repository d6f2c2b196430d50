"""
Locker Configuration — Iteration counts, size limits and length policy.

Values can be overridden from environment variables:
    CREDLOCKER_MASTER_KEY_HASH_ITERATIONS = <int>
    CREDLOCKER_INTERMEDIATE_ITERATIONS = <int>
    CREDLOCKER_FINAL_ITERATION_MULTIPLIER = <int>
    CREDLOCKER_FINAL_ITERATION_FACTOR_MIN = <int>
    CREDLOCKER_FINAL_ITERATION_FACTOR_MAX = <int>
    CREDLOCKER_MAX_FINAL_ITERATIONS = <int>
    CREDLOCKER_FILE_SIZE = <bytes>

Length bounds are policy values checked at the boundary (session layer);
the crypto core itself accepts any length.

Security Note:
    Never log key material. Policy errors only report lengths.
"""
import os
import logging

from pydantic import BaseModel, Field, model_validator

from ..exceptions import PolicyError

logger = logging.getLogger("credlocker")

_ENV_PREFIX = "CREDLOCKER_"

_ENV_FIELDS = (
    "master_key_hash_iterations",
    "intermediate_iterations",
    "final_iteration_multiplier",
    "final_iteration_factor_min",
    "final_iteration_factor_max",
    "max_final_iterations",
    "file_size",
)


class VaultConfig(BaseModel):
    """Validated locker configuration."""

    # key derivation
    master_key_hash_iterations: int = Field(default=1_000_000, ge=0)
    intermediate_iterations: int = Field(default=1_000_000, ge=1)
    final_iteration_multiplier: int = Field(default=1_000_000, ge=1)
    final_iteration_factor_min: int = Field(default=1, ge=1)
    final_iteration_factor_max: int = Field(default=10, ge=1)
    # envelopes and signatures above this count are refused before PBKDF2
    max_final_iterations: int = Field(default=100_000_000, ge=1)
    # file limits
    file_size: int = Field(default=1 * 1024 * 1024, ge=1)
    # length policy
    master_key_min_length: int = Field(default=16, ge=1)
    master_key_max_length: int = Field(default=32, ge=1)
    secret_min_length: int = Field(default=16, ge=1)
    secret_max_length: int = Field(default=32, ge=1)
    aad_min_length: int = Field(default=8, ge=1)
    aad_max_length: int = Field(default=32, ge=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_ranges(self) -> "VaultConfig":
        """Ensure every (min, max) pair is ordered and fits the ceiling."""
        pairs = (
            ("final_iteration_factor", self.final_iteration_factor_min,
             self.final_iteration_factor_max),
            ("master_key", self.master_key_min_length, self.master_key_max_length),
            ("secret", self.secret_min_length, self.secret_max_length),
            ("aad", self.aad_min_length, self.aad_max_length),
        )
        for name, low, high in pairs:
            if low > high:
                raise ValueError(
                    f"{name} minimum ({low}) is greater than maximum ({high})"
                )
        highest = self.final_iteration_factor_max * self.final_iteration_multiplier
        if highest > self.max_final_iterations:
            raise ValueError(
                f"final iteration range reaches {highest}, above "
                f"max_final_iterations ({self.max_final_iterations})"
            )
        return self

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig, overriding defaults from the environment.

        Returns:
            Populated VaultConfig instance.
        """
        values = {}
        for name in _ENV_FIELDS:
            raw = os.environ.get(f"{_ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = int(raw)
        if values:
            logger.debug("Config overrides from environment: %s", sorted(values))
        return cls(**values)

    # ------------------------------------------------------------------
    # Policy checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_length(label: str, value: str, low: int, high: int) -> None:
        if not low <= len(value) <= high:
            raise PolicyError(
                f"{label} length must be between {low} and {high} characters."
            )

    def check_master_key(self, master_key: str) -> None:
        """Raise PolicyError if the master key length is out of bounds."""
        self._check_length(
            "Master key", master_key,
            self.master_key_min_length, self.master_key_max_length,
        )

    def check_secret(self, secret: str) -> None:
        """Raise PolicyError if the secret length is out of bounds."""
        self._check_length(
            "Secret", secret, self.secret_min_length, self.secret_max_length,
        )

    def check_aad(self, aad: str) -> None:
        """Raise PolicyError if a non-blank AAD is out of bounds.

        A blank AAD means "no AAD" and is always accepted.
        """
        if not aad.strip():
            return
        self._check_length(
            "Additional data", aad, self.aad_min_length, self.aad_max_length,
        )


def default_config() -> VaultConfig:
    """Return the configuration used when callers do not provide one."""
    return VaultConfig.from_env()
