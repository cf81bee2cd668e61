from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated

import dateutil.parser
from serpyco_rs.metadata import deserialize_with


class AcmeOrderStatus(str, Enum):
    """Order status as reported by the ACME server."""

    pending = 'pending'
    ready = 'ready'
    processing = 'processing'
    valid = 'valid'
    invalid = 'invalid'


class ChallengeType(str, Enum):
    """Challenge types an ACME server may offer."""

    http01 = 'http-01'
    dns01 = 'dns-01'
    tlsalpn01 = 'tls-alpn-01'
    dnsaccount01 = 'dns-account-01'


@dataclass(frozen=True, slots=True)
class AcmeIdentifier:
    """Identifier object."""

    value: str
    type: str = 'dns'


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeProblem:
    """Problem document (RFC 7807) returned by the ACME server."""

    type: str
    detail: str = ''
    identifier: AcmeIdentifier | None = None
    subproblems: Sequence['AcmeProblem'] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeOrder:
    """Order object.

    ``status`` is kept as the raw string the server sent.
    """

    uri: str
    status: str
    identifiers: Sequence[AcmeIdentifier] = ()
    authorizations: Sequence[str] = ()
    """Authorization URLs, in the order the server listed them."""
    finalize: str = ''
    certificate: str | None = None
    expires: Annotated[datetime, deserialize_with(dateutil.parser.isoparse)] | None = None
    error: AcmeProblem | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeChallenge:
    """One challenge offered for an authorization."""

    type: str
    url: str
    token: str = ''
    status: str = 'pending'
    validated: Annotated[datetime, deserialize_with(dateutil.parser.isoparse)] | None = None
    error: AcmeProblem | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AcmeAuthorization:
    """Authorization object."""

    uri: str
    identifier: AcmeIdentifier
    status: str
    challenges: Sequence[AcmeChallenge] = ()
    """Offered challenges, in server order."""
    wildcard: bool = False
    expires: Annotated[datetime, deserialize_with(dateutil.parser.isoparse)] | None = None
