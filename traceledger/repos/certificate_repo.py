from __future__ import annotations

from typing import Protocol

from traceledger.models.certificate import Certificate


class CertificateRepo(Protocol):
    def get(self, cert_id: int) -> Certificate | None: ...
    def peek_next_id(self) -> int: ...
    def add(self, cert: Certificate) -> None: ...
    def update(self, cert: Certificate) -> None: ...
    def list_by_owner(self, owner: str) -> list[Certificate]: ...
    def list_all(self) -> list[Certificate]: ...
    def count(self) -> int: ...


class InMemoryCertificateRepo:
    """Certificates keyed by id, with an owner index.

    Ids are handed out by ``peek_next_id`` and consumed by ``add``, so
    an id is only used once a certificate has actually been stored.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, Certificate] = {}
        self._by_owner: dict[str, list[int]] = {}
        self._next_id = 1

    def get(self, cert_id: int) -> Certificate | None:
        return self._by_id.get(cert_id)

    def peek_next_id(self) -> int:
        return self._next_id

    def add(self, cert: Certificate) -> None:
        if cert.id != self._next_id:
            raise ValueError(f"expected certificate id {self._next_id}, got {cert.id}")
        self._by_id[cert.id] = cert
        self._by_owner.setdefault(cert.owner, []).append(cert.id)
        self._next_id += 1

    def update(self, cert: Certificate) -> None:
        existing = self._by_id.get(cert.id)
        if existing is None:
            raise KeyError("certificate not found")
        if existing.owner != cert.owner:
            raise ValueError("certificate owner is immutable")
        self._by_id[cert.id] = cert

    def list_by_owner(self, owner: str) -> list[Certificate]:
        return [self._by_id[i] for i in self._by_owner.get(owner, [])]

    def list_all(self) -> list[Certificate]:
        return [self._by_id[i] for i in sorted(self._by_id)]

    def count(self) -> int:
        return len(self._by_id)
