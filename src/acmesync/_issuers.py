import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Final

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from acmesync._client import AcmeClient, Client
from acmesync._exceptions import (
    AccountKeyError,
    IssuerLookupError,
    IssuerNotAcmeError,
    NotFoundError,
    UnsupportedIssuerError,
)
from acmesync._jose import jwk_thumbprint, make_jwk
from acmesync._resources import AcmeIssuerConfig, ClusterIssuer, GenericIssuer, Issuer, IssuerRef, Secret
from acmesync._store import ResourceStore
from acmesync._types import AccountKeyTypes

logger = logging.getLogger(__name__)

ISSUER_ACME: Final = 'acme'

ClientFactory = Callable[[AcmeIssuerConfig, AccountKeyTypes], AcmeClient]


def default_client_factory(config: AcmeIssuerConfig, account_key: AccountKeyTypes) -> AcmeClient:
    return Client(
        account_key=account_key,
        directory_url=config.server,
        contact=[f'mailto:{config.email}'] if config.email else (),
        ssl=not config.skip_tls_verify,
    )


class ClientCache:
    """
    Reuses ACME clients across reconciliations.

    Clients are keyed by directory URL, TLS verification and account key, so
    nonces and the account URI survive between calls.
    """

    def __init__(self, factory: ClientFactory = default_client_factory) -> None:
        self._factory = factory
        self._clients: dict[tuple[str, bool, str], AcmeClient] = {}

    def get(self, config: AcmeIssuerConfig, account_key: AccountKeyTypes) -> AcmeClient:
        key = (config.server, config.skip_tls_verify, jwk_thumbprint(make_jwk(account_key)))
        client = self._clients.get(key)
        if client is None:
            logger.debug('Creating ACME client for %s', config.server)
            client = self._clients[key] = self._factory(config, account_key)
        return client

    async def aclose(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            if isinstance(client, Client):
                await client.close()


@dataclass(kw_only=True)
class IssuerContext:
    """Shared dependencies handed to every issuer backend."""

    store: ResourceStore
    clients: ClientCache = field(default_factory=ClientCache)
    cluster_resource_namespace: str = 'acmesync'
    """Namespace holding the secrets referenced by ClusterIssuers."""


class AcmeIssuer:
    """Issuer backend for issuers configured with an ACME server."""

    issuer: GenericIssuer
    config: AcmeIssuerConfig

    def __init__(self, context: IssuerContext, issuer: GenericIssuer) -> None:
        if issuer.spec.acme is None:
            raise IssuerNotAcmeError(issuer.metadata.name)
        self.issuer = issuer
        self.config = issuer.spec.acme
        self._context = context

    @property
    def resource_namespace(self) -> str:
        """Namespace the issuer's secrets are read from."""
        if isinstance(self.issuer, ClusterIssuer):
            return self._context.cluster_resource_namespace
        return self.issuer.metadata.namespace

    async def client(self) -> AcmeClient:
        """ACME client for this issuer's server and account."""
        return self._context.clients.get(self.config, await self._account_key())

    async def _account_key(self) -> AccountKeyTypes:
        ref = self.config.private_key_secret_ref
        namespace = self.resource_namespace
        try:
            secret = await self._context.store.get(Secret, namespace, ref.name)
        except NotFoundError as exc:
            raise AccountKeyError(f'error getting ACME account private key: {exc}') from exc

        try:
            data = secret.data[ref.key]
        except KeyError:
            raise AccountKeyError(f'no data for key {ref.key!r} in secret {namespace}/{ref.name}') from None

        try:
            key = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError) as exc:
            raise AccountKeyError(f'error parsing ACME account private key in secret {namespace}/{ref.name}') from exc

        if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
            raise AccountKeyError(f'unsupported ACME account key type {type(key).__name__}')
        return key


IssuerFactory = Callable[[IssuerContext, GenericIssuer], AcmeIssuer]


def issuer_type(issuer: GenericIssuer) -> str | None:
    if issuer.spec.acme is not None:
        return ISSUER_ACME
    return None


class IssuerRegistry:
    """
    Builds issuer backends from issuer resources.

    Backends are looked up by issuer type in an explicit factory map.
    """

    def __init__(self, context: IssuerContext, factories: Mapping[str, IssuerFactory]) -> None:
        self._context = context
        self._factories = dict(factories)

    @classmethod
    def default(cls, context: IssuerContext) -> 'IssuerRegistry':
        return cls(context, {ISSUER_ACME: AcmeIssuer})

    async def get(self, ref: IssuerRef, namespace: str) -> AcmeIssuer:
        """
        Resolve an issuer reference and build its backend.

        :param ref: reference from an Order spec.
        :param namespace: namespace of the referring Order.
        """
        return self.backend_for(await self.get_generic_issuer(ref, namespace))

    async def get_generic_issuer(self, ref: IssuerRef, namespace: str) -> GenericIssuer:
        kind: type[Issuer] | type[ClusterIssuer]
        if ref.kind == 'ClusterIssuer':
            kind, namespace = ClusterIssuer, ''
        elif ref.kind in ('Issuer', ''):
            kind = Issuer
        else:
            raise IssuerLookupError(f'invalid issuer kind {ref.kind!r}')

        try:
            return await self._context.store.get(kind, namespace, ref.name)
        except NotFoundError as exc:
            raise IssuerLookupError(f'error reading (cluster)issuer {ref.name!r}: {exc}') from exc

    def backend_for(self, issuer: GenericIssuer) -> AcmeIssuer:
        type_ = issuer_type(issuer)
        if type_ is None:
            raise IssuerNotAcmeError(issuer.metadata.name)
        try:
            factory = self._factories[type_]
        except KeyError:
            raise UnsupportedIssuerError(f'no issuer backend registered for issuer type {type_!r}') from None
        return factory(self._context, issuer)
