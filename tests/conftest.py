from datetime import datetime, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from fakes import ACME_CONFIG, ISSUER_REF, SOLVER_CONFIGS, FakeAcmeClient, FrozenClock

import acmesync


@pytest.fixture(autouse=True, scope='session', params=['asyncio', 'trio'])
def anyio_backend(request) -> str:
    return request.param


@pytest.fixture(scope='session')
def account_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope='session')
def account_key_pem(account_key) -> bytes:
    return account_key.private_bytes(
        serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, serialization.NoEncryption()
    )


@pytest.fixture(scope='session')
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope='session')
def csr(private_key) -> bytes:
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME, 'a.com')]))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName('a.com'), x509.DNSName('b.com')]), critical=False)
        .sign(private_key, hashes.SHA256())
        .public_bytes(serialization.Encoding.PEM)
    )


@pytest.fixture()
def store() -> acmesync.MemoryStore:
    return acmesync.MemoryStore()


@pytest.fixture()
def acme_client() -> FakeAcmeClient:
    return FakeAcmeClient()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, tzinfo=timezone.utc))


@pytest.fixture()
async def issuer(store, account_key_pem) -> acmesync.Issuer:
    await store.create(
        acmesync.Secret(
            metadata=acmesync.ObjectMeta(name='acme-account', namespace='default'),
            data={'tls.key': account_key_pem},
        )
    )
    return await store.create(
        acmesync.Issuer(
            metadata=acmesync.ObjectMeta(name=ISSUER_REF.name, namespace='default'),
            spec=acmesync.IssuerSpec(acme=ACME_CONFIG),
        )
    )


@pytest.fixture()
def issuer_context(store, acme_client) -> acmesync.IssuerContext:
    return acmesync.IssuerContext(store=store, clients=acmesync.ClientCache(lambda config, key: acme_client))


@pytest.fixture()
def controller(store, issuer_context, clock, issuer) -> acmesync.OrderController:
    return acmesync.OrderController(
        store=store, issuers=acmesync.IssuerRegistry.default(issuer_context), clock=clock
    )


@pytest.fixture()
def create_order(store, csr):
    async def create_order(
        name: str = 'example',
        *,
        dns_names=('a.com', 'b.com'),
        common_name: str = '',
        status: acmesync.OrderStatus | None = None,
        issuer_ref: acmesync.IssuerRef = ISSUER_REF,
    ) -> acmesync.Order:
        return await store.create(
            acmesync.Order(
                metadata=acmesync.ObjectMeta(name=name, namespace='default'),
                spec=acmesync.OrderSpec(
                    csr=csr,
                    issuer_ref=issuer_ref,
                    dns_names=dns_names,
                    common_name=common_name,
                    config=SOLVER_CONFIGS,
                ),
                status=status or acmesync.OrderStatus(),
            )
        )

    return create_order
