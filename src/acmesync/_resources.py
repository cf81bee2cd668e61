from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Final, Protocol

API_VERSION: Final = 'acmesync.io/v1alpha1'
ORDER_NAME_LABEL: Final = 'acmesync.io/order-name'


class State(str, Enum):
    """
    State of an Order or a Challenge.

    Persisted states are plain strings so that whatever the ACME server reports
    can be stored verbatim; members of this enum compare equal to them.
    """

    unknown = ''
    """Not a real ACME state: the state has not been observed yet."""
    pending = 'pending'
    processing = 'processing'
    ready = 'ready'
    valid = 'valid'
    invalid = 'invalid'
    failed = 'failed'
    expired = 'expired'
    errored = 'errored'


_FAILURE_STATES: Final = frozenset(s.value for s in (State.invalid, State.failed, State.expired, State.errored))


def is_failure_state(state: str) -> bool:
    return state in _FAILURE_STATES


def is_final_state(state: str) -> bool:
    """Nothing is left to do for an order in this state."""
    return state == State.valid or is_failure_state(state)


@dataclass(frozen=True, slots=True, kw_only=True)
class OwnerReference:
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True


@dataclass(slots=True, kw_only=True)
class ObjectMeta:
    name: str
    namespace: str = ''
    labels: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(default_factory=list)
    uid: str = ''
    """Assigned by the store on creation."""
    resource_version: str = ''
    """Assigned by the store, checked on update."""


class Resource(Protocol):
    metadata: ObjectMeta


@dataclass(frozen=True, slots=True)
class IssuerRef:
    name: str
    kind: str = 'Issuer'
    """``Issuer`` (same namespace as the referrer) or ``ClusterIssuer``."""


@dataclass(frozen=True, slots=True, kw_only=True)
class HTTP01SolverConfig:
    ingress: str = ''
    ingress_class: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DNS01SolverConfig:
    provider: str


@dataclass(frozen=True, slots=True, kw_only=True)
class SolverConfig:
    """Challenge mechanisms the user allows for a group of domains."""

    http01: HTTP01SolverConfig | None = None
    dns01: DNS01SolverConfig | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DomainSolverConfig:
    domains: Sequence[str]
    """Exact names, or wildcard names such as ``*.example.com``."""
    solver: SolverConfig


@dataclass(frozen=True, slots=True, kw_only=True)
class ChallengeSpec:
    """One planned challenge, computed when the order is created."""

    authz_url: str
    type: str
    url: str
    dns_name: str
    token: str
    key: str
    """Key authorization (HTTP-01) or TXT record value (DNS-01)."""
    config: SolverConfig
    wildcard: bool = False
    issuer_ref: IssuerRef


@dataclass(frozen=True, slots=True, kw_only=True)
class OrderSpec:
    csr: bytes
    """PEM or DER encoded certificate signing request."""
    issuer_ref: IssuerRef
    dns_names: Sequence[str] = ()
    common_name: str = ''
    config: Sequence[DomainSolverConfig] = ()


@dataclass(slots=True, kw_only=True)
class OrderStatus:
    url: str = ''
    finalize_url: str = ''
    certificate_url: str = ''
    state: str = State.unknown.value
    challenges: list[ChallengeSpec] | None = None
    """Planned challenges; ``None`` until derived from the order's authorizations."""
    failure_time: datetime | None = None


@dataclass(slots=True, kw_only=True)
class Order:
    metadata: ObjectMeta
    spec: OrderSpec
    status: OrderStatus = field(default_factory=OrderStatus)


@dataclass(slots=True, kw_only=True)
class ChallengeStatus:
    state: str = State.unknown.value
    reason: str = ''


@dataclass(slots=True, kw_only=True)
class Challenge:
    metadata: ObjectMeta
    spec: ChallengeSpec
    status: ChallengeStatus = field(default_factory=ChallengeStatus)


@dataclass(frozen=True, slots=True, kw_only=True)
class SecretKeySelector:
    name: str
    key: str = 'tls.key'


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeIssuerHTTP01Config:
    service_type: str = ''


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeIssuerDNS01Config:
    providers: Sequence[str] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeIssuerConfig:
    """ACME server, account and the challenge mechanisms the issuer supports."""

    server: str
    """Directory URL."""
    private_key_secret_ref: SecretKeySelector
    email: str = ''
    skip_tls_verify: bool = False
    http01: AcmeIssuerHTTP01Config | None = None
    dns01: AcmeIssuerDNS01Config | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class IssuerSpec:
    acme: AcmeIssuerConfig | None = None


@dataclass(slots=True, kw_only=True)
class Issuer:
    metadata: ObjectMeta
    spec: IssuerSpec


@dataclass(slots=True, kw_only=True)
class ClusterIssuer:
    metadata: ObjectMeta
    spec: IssuerSpec


GenericIssuer = Issuer | ClusterIssuer


@dataclass(slots=True, kw_only=True)
class Secret:
    metadata: ObjectMeta
    data: Mapping[str, bytes] = field(default_factory=dict)
