from collections.abc import Sequence

from acmesync._acme_models import AcmeProblem


class AcmeError(Exception):
    """The ACME server answered with a problem document."""

    problem: AcmeProblem

    def __init__(self, problem: AcmeProblem) -> None:
        self.problem = problem
        super().__init__(f'{problem.type}: {problem.detail}')


class OrderSyncError(Exception):
    """Base class for errors raised while reconciling an Order."""


class ConfigurationError(OrderSyncError):
    """
    The Order or its issuer is misconfigured.

    Retrying will keep failing until the user changes the configuration.
    """


class SolverConfigurationNotFoundError(ConfigurationError):
    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(
            f'solver configuration for domain {domain!r} not found. '
            'Ensure you have configured a challenge mechanism using the order config field'
        )


class NoAcceptableChallengeError(ConfigurationError):
    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(
            'ACME server does not allow selected challenge type '
            f'or no provider is configured for domain {domain!r}'
        )


class UnsupportedChallengeTypeError(ConfigurationError):
    def __init__(self, challenge_type: str) -> None:
        self.challenge_type = challenge_type
        super().__init__(f'unsupported challenge type {challenge_type}')


class IssuerNotAcmeError(ConfigurationError):
    def __init__(self, issuer_name: str) -> None:
        self.issuer_name = issuer_name
        super().__init__(
            f'issuer {issuer_name!r} is not configured as an ACME issuer. Cannot be used for creating ACME orders'
        )


class UnsupportedIssuerError(ConfigurationError):
    """No backend is registered for the issuer's type."""


class IssuerLookupError(ConfigurationError):
    """The referenced (cluster) issuer could not be read."""


class AccountKeyError(ConfigurationError):
    """The ACME account private key is missing or unreadable."""


class OrderAlreadyCreatedError(OrderSyncError):
    def __init__(self, order_name: str) -> None:
        super().__init__(
            f'refusing to recreate a new order for Order {order_name!r}. '
            'Please create a new Order resource to initiate a new order'
        )


class OrderNotCreatedError(OrderSyncError):
    def __init__(self) -> None:
        super().__init__('order URL is blank - order has not been created yet')


class UnrecognizedStateError(OrderSyncError):
    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f'unknown order state {state!r}')


class RetryRequiredError(OrderSyncError):
    """The Order changed in a way that needs another pass after back-off."""


class AggregateError(OrderSyncError):
    """Several independent failures reported as one."""

    errors: Sequence[Exception]

    def __init__(self, message: str, errors: Sequence[Exception]) -> None:
        self.errors = tuple(errors)
        super().__init__(f'{message}: [{", ".join(str(e) for e in self.errors)}]')


class ChallengeCreationError(AggregateError):
    pass


class StoreError(Exception):
    """Base class for resource store failures."""


class NotFoundError(StoreError):
    pass


class AlreadyExistsError(StoreError):
    pass


class ConflictError(StoreError):
    """The object was modified since it was read; re-read and retry."""
