import hashlib
import logging
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from ssl import SSLContext
from types import TracebackType
from typing import Any, Final, Protocol

import anyio
import httpx
import orjson
import serpyco_rs
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from acmesync._acme_models import AcmeAuthorization, AcmeIdentifier, AcmeOrder, AcmeProblem
from acmesync._exceptions import AcmeError
from acmesync._jose import JWK, jwk_thumbprint, jws_encode, make_jwk
from acmesync._types import AccountKeyTypes
from acmesync._utils import b64_encode

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

logger = logging.getLogger(__name__)

BAD_NONCE_RETRIES: Final = 5

_identifier_serializer = serpyco_rs.Serializer(AcmeIdentifier, camelcase_fields=True)
_problem_serializer = serpyco_rs.Serializer(AcmeProblem, camelcase_fields=True)
_order_serializer = serpyco_rs.Serializer(AcmeOrder, camelcase_fields=True)
_authorization_serializer = serpyco_rs.Serializer(AcmeAuthorization, camelcase_fields=True)


class AcmeClient(Protocol):
    """The part of an ACME client the order controller relies on."""

    async def new_order(self, identifiers: Sequence[str]) -> AcmeOrder:
        ...

    async def get_order(self, order_uri: str) -> AcmeOrder:
        ...

    async def get_authorization(self, authorization_uri: str) -> AcmeAuthorization:
        ...

    async def finalize_order(self, finalize: str, csr: bytes) -> AcmeOrder:
        ...

    def get_http_challenge_validation(self, token: str) -> str:
        ...

    def get_dns_challenge_validation(self, token: str) -> str:
        ...


class Client:
    directory_url: Final[str]
    account_uri: str | None

    def __init__(
        self,
        *,
        account_key: AccountKeyTypes,
        directory_url: str,
        account_uri: str | None = None,
        contact: Sequence[str] = (),
        ssl: SSLContext | bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Create new ACME client.

        The account is registered (or looked up) on the first signed request.

        :param account_key: private key for account.
        :param directory_url: URL to get directory.
        :param account_uri: optional account URI, if not provided, it would be fetched on first request.
        :param contact: account contact URLs, e.g. ``mailto:admin@example.com``.
        :param ssl: SSL context or whether to verify the server certificate.
        :param transport: custom httpx transport.
        """
        self.directory_url = directory_url
        self.account_uri = account_uri
        self._account_key = account_key
        self._contact = list(contact)

        self._jwk = make_jwk(account_key)
        self._thumbprint = jwk_thumbprint(self._jwk)

        self._directory: _Directory | None = None
        self._client = httpx.AsyncClient(verify=ssl, transport=transport)

        self._nonces: list[str] = []
        self._nonce_lock = anyio.Lock()

    async def register_account(self) -> str:
        """Register the account key (or find the existing account) and return the account URI."""
        url = (await self._get_directory()).new_account
        data: dict[str, Any] = {'termsOfServiceAgreed': True}
        if self._contact:
            data['contact'] = self._contact
        response = await self._request(url, data=data, jwk=self._jwk)
        self.account_uri = response.headers['Location']
        logger.info('Using ACME account %s', self.account_uri)
        return self.account_uri

    async def new_order(self, identifiers: Sequence[str]) -> AcmeOrder:
        """
        Create new certificate order.

        :param identifiers: DNS names.
        """
        url = (await self._get_directory()).new_order
        data = {'identifiers': [_identifier_serializer.dump(AcmeIdentifier(value)) for value in identifiers]}
        response = await self._request(url, data=data)
        return _order_serializer.load({**orjson.loads(response.content), 'uri': response.headers['Location']})

    async def get_order(self, order_uri: str) -> AcmeOrder:
        response = await self._request(order_uri)
        return _order_serializer.load({**orjson.loads(response.content), 'uri': order_uri})

    async def get_authorization(self, authorization_uri: str) -> AcmeAuthorization:
        response = await self._request(authorization_uri)
        return _authorization_serializer.load({**orjson.loads(response.content), 'uri': authorization_uri})

    async def finalize_order(self, finalize: str, csr: bytes) -> AcmeOrder:
        """
        Finalize the order by submitting the CSR to issue certificate.

        :param finalize: finalize URL.
        :param csr: PEM or DER encoded CSR.
        """
        if csr.lstrip().startswith(b'-----BEGIN'):
            csr = x509.load_pem_x509_csr(csr).public_bytes(serialization.Encoding.DER)
        response = await self._request(finalize, data={'csr': b64_encode(csr)})
        uri = response.headers.get('Location', finalize)
        return _order_serializer.load({**orjson.loads(response.content), 'uri': uri})

    def get_http_challenge_validation(self, token: str) -> str:
        """
        Key authorization to serve for an HTTP-01 challenge.

        :param token: challenge token.
        """
        return f'{token}.{self._thumbprint}'

    def get_dns_challenge_validation(self, token: str) -> str:
        """
        TXT record value for a DNS-01 challenge.

        :param token: challenge token.
        """
        return b64_encode(hashlib.sha256(self.get_http_challenge_validation(token).encode('ascii')).digest())

    async def _request(
        self,
        url: str,
        *,
        data: Mapping[str, Any] | None = None,
        jwk: JWK | None = None,
    ) -> httpx.Response:
        # data=None is a POST-as-GET
        payload = b'' if data is None else orjson.dumps(data)
        key_header: dict[str, Any] = {'jwk': jwk} if jwk is not None else {'kid': await self._get_account_uri()}

        for _ in range(BAD_NONCE_RETRIES):
            headers = {**key_header, 'url': url, 'nonce': await self._get_nonce()}
            response = await self._client.post(
                url,
                content=jws_encode(payload, self._account_key, headers),
                headers={'Content-Type': 'application/jose+json'},
            )
            self._save_nonce(response)

            if response.status_code < 300:
                return response

            problem = _parse_problem(response)
            if problem.type != 'urn:ietf:params:acme:error:badNonce':
                raise AcmeError(problem)
            logger.debug('Bad nonce for %s, retrying', url)

        raise AcmeError(problem)

    async def _get_account_uri(self) -> str:
        return self.account_uri or await self.register_account()

    async def _get_nonce(self) -> str:
        async with self._nonce_lock:
            if not self._nonces:
                response = await self._client.head((await self._get_directory()).new_nonce)
                self._save_nonce(response)
            return self._nonces.pop()

    def _save_nonce(self, response: httpx.Response) -> None:
        nonce = response.headers.get('Replay-Nonce')
        if nonce:
            self._nonces.append(nonce)

    async def _get_directory(self) -> '_Directory':
        if self._directory is None:
            response = await self._client.get(self.directory_url)
            response.raise_for_status()
            response_data = orjson.loads(response.content)
            self._directory = _Directory(
                new_account=response_data['newAccount'],
                new_nonce=response_data['newNonce'],
                new_order=response_data['newOrder'],
            )

        return self._directory

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        with anyio.CancelScope(shield=True):
            await self.close()


def _parse_problem(response: httpx.Response) -> AcmeProblem:
    try:
        return _problem_serializer.load(orjson.loads(response.content))
    except orjson.JSONDecodeError:
        return AcmeProblem(type='unknown', detail=response.text)


@dataclass(frozen=True, slots=True)
class _Directory:
    new_account: str
    new_nonce: str
    new_order: str
