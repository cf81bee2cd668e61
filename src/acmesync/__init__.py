from acmesync._acme_models import (
    AcmeAuthorization,
    AcmeChallenge,
    AcmeIdentifier,
    AcmeOrder,
    AcmeOrderStatus,
    AcmeProblem,
    ChallengeType,
)
from acmesync._client import AcmeClient, Client
from acmesync._exceptions import (
    AccountKeyError,
    AcmeError,
    AggregateError,
    AlreadyExistsError,
    ChallengeCreationError,
    ConfigurationError,
    ConflictError,
    IssuerLookupError,
    IssuerNotAcmeError,
    NoAcceptableChallengeError,
    NotFoundError,
    OrderAlreadyCreatedError,
    OrderNotCreatedError,
    OrderSyncError,
    RetryRequiredError,
    SolverConfigurationNotFoundError,
    StoreError,
    UnrecognizedStateError,
    UnsupportedChallengeTypeError,
    UnsupportedIssuerError,
)
from acmesync._issuers import (
    ISSUER_ACME,
    AcmeIssuer,
    ClientCache,
    IssuerContext,
    IssuerRegistry,
    default_client_factory,
    issuer_type,
)
from acmesync._orders import OrderController
from acmesync._resources import (
    API_VERSION,
    ORDER_NAME_LABEL,
    AcmeIssuerConfig,
    AcmeIssuerDNS01Config,
    AcmeIssuerHTTP01Config,
    Challenge,
    ChallengeSpec,
    ChallengeStatus,
    ClusterIssuer,
    DNS01SolverConfig,
    DomainSolverConfig,
    HTTP01SolverConfig,
    Issuer,
    IssuerRef,
    IssuerSpec,
    ObjectMeta,
    Order,
    OrderSpec,
    OrderStatus,
    OwnerReference,
    Secret,
    SecretKeySelector,
    SolverConfig,
    State,
    is_failure_state,
    is_final_state,
)
from acmesync._store import MemoryStore, ResourceStore
from acmesync._version import __version__, __version_tuple__

__all__ = [
    'API_VERSION',
    'ISSUER_ACME',
    'ORDER_NAME_LABEL',
    'AccountKeyError',
    'AcmeAuthorization',
    'AcmeChallenge',
    'AcmeClient',
    'AcmeError',
    'AcmeIdentifier',
    'AcmeIssuer',
    'AcmeIssuerConfig',
    'AcmeIssuerDNS01Config',
    'AcmeIssuerHTTP01Config',
    'AcmeOrder',
    'AcmeOrderStatus',
    'AcmeProblem',
    'AggregateError',
    'AlreadyExistsError',
    'Challenge',
    'ChallengeCreationError',
    'ChallengeSpec',
    'ChallengeStatus',
    'ChallengeType',
    'Client',
    'ClientCache',
    'ClusterIssuer',
    'ConfigurationError',
    'ConflictError',
    'DNS01SolverConfig',
    'DomainSolverConfig',
    'HTTP01SolverConfig',
    'Issuer',
    'IssuerContext',
    'IssuerLookupError',
    'IssuerNotAcmeError',
    'IssuerRef',
    'IssuerRegistry',
    'IssuerSpec',
    'MemoryStore',
    'NoAcceptableChallengeError',
    'NotFoundError',
    'ObjectMeta',
    'Order',
    'OrderAlreadyCreatedError',
    'OrderController',
    'OrderNotCreatedError',
    'OrderSpec',
    'OrderStatus',
    'OrderSyncError',
    'OwnerReference',
    'ResourceStore',
    'RetryRequiredError',
    'Secret',
    'SecretKeySelector',
    'SolverConfig',
    'SolverConfigurationNotFoundError',
    'State',
    'StoreError',
    'UnrecognizedStateError',
    'UnsupportedChallengeTypeError',
    'UnsupportedIssuerError',
    'default_client_factory',
    'is_failure_state',
    'is_final_state',
    'issuer_type',
    '__version__',
    '__version_tuple__',
]
