from types import MappingProxyType
from typing import Optional
from collections.abc import Iterator, Mapping

from pydantic import BaseModel, Field, field_serializer, field_validator

DATE_FIELD = 'DATE'
HMAC_FIELD = 'HMAC'


class Vault(BaseModel):
    """Vault snapshot.

    Holds named base64 envelopes (``secrets``, insertion ordered) and the
    integrity metadata (``DATE`` and ``HMAC``) of one vault file.

    Snapshots are immutable: both sections are read-only mappings and
    every mutation returns a new Vault, so a reader holding the previous
    snapshot keeps seeing a consistent view.
    """

    secrets: Mapping[str, str] = Field(default_factory=dict)
    integrity: Mapping[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("secrets", "integrity", mode="after")
    @classmethod
    def read_only(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("secrets", "integrity")
    def dump_mapping(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    def __repr__(self) -> str:
        return (
            f'<Vault secrets={list(self.secrets.keys())}, '
            f'date={self.date!r}, sealed={self.sealed}>'
        )

    # --- Properties ---

    @property
    def date(self) -> Optional[str]:
        return self.integrity.get(DATE_FIELD)

    @property
    def hmac(self) -> Optional[str]:
        return self.integrity.get(HMAC_FIELD)

    @property
    def sealed(self) -> bool:
        return bool(self.integrity.get(HMAC_FIELD))

    @property
    def empty(self) -> bool:
        return not self.secrets

    def names(self) -> list[str]:
        return list(self.secrets.keys())

    # --- Copy-on-write mutations ---

    def with_secret(self, name: str, envelope: str) -> "Vault":
        """Return a new snapshot with ``name`` set to ``envelope``.

        The integrity section is carried over unchanged; callers reseal
        the returned snapshot afterwards.
        """
        secrets = dict(self.secrets)
        secrets[name] = envelope
        return Vault(secrets=secrets, integrity=dict(self.integrity))

    def without_secret(self, name: str) -> "Vault":
        """Return a new snapshot without ``name``.

        Raises:
            KeyError: If the secret does not exist.
        """
        if name not in self.secrets:
            raise KeyError(name)
        secrets = {k: v for k, v in self.secrets.items() if k != name}
        return Vault(secrets=secrets, integrity=dict(self.integrity))

    def with_integrity(self, **fields: str) -> "Vault":
        """Return a new snapshot with integrity fields updated.

        ``HMAC`` is always kept as the last integrity field.
        """
        integrity = dict(self.integrity)
        integrity.update(fields)
        if HMAC_FIELD in integrity:
            integrity[HMAC_FIELD] = integrity.pop(HMAC_FIELD)
        return Vault(secrets=dict(self.secrets), integrity=integrity)

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self.secrets)

    def __contains__(self, name: object) -> bool:
        return name in self.secrets

    def __getitem__(self, name: str) -> str:
        return self.secrets[name]

    def iter_secrets(self) -> Iterator[tuple[str, str]]:
        yield from self.secrets.items()
