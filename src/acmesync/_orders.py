import copy
import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from acmesync._acme_models import AcmeOrder
from acmesync._client import AcmeClient
from acmesync._exceptions import (
    AggregateError,
    ChallengeCreationError,
    OrderAlreadyCreatedError,
    OrderNotCreatedError,
    OrderSyncError,
    RetryRequiredError,
    UnrecognizedStateError,
)
from acmesync._issuers import IssuerRegistry
from acmesync._resources import (
    API_VERSION,
    ORDER_NAME_LABEL,
    AcmeIssuerConfig,
    Challenge,
    ChallengeSpec,
    ObjectMeta,
    Order,
    OrderStatus,
    OwnerReference,
    State,
    is_failure_state,
    is_final_state,
)
from acmesync._solvers import challenge_spec_for_authorization
from acmesync._store import ResourceStore
from acmesync._utils import utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class OrderController:
    """
    Drives Orders through the ACME order flow.

    One call to :meth:`sync` performs one step: create the order, plan and
    create its challenges, wait for them, or finalize. The caller is expected
    to call :meth:`sync` again (with back-off) when it raises, and whenever the
    Order or one of its Challenges changes. Calls for the same Order must not
    overlap.
    """

    def __init__(self, *, store: ResourceStore, issuers: IssuerRegistry, clock: Clock = utcnow) -> None:
        """
        :param store: store holding Orders, Challenges, issuers and secrets.
        :param issuers: registry resolving an Order's issuer reference.
        :param clock: source of the current time, used for failure timestamps.
        """
        self._store = store
        self._issuers = issuers
        self._clock = clock

    async def sync(self, order: Order) -> None:
        """
        Reconcile ``order`` and persist its status if it changed.

        ``order`` itself is not modified.
        """
        updated = copy.deepcopy(order)
        error: Exception | None = None
        try:
            await self._sync(updated)
        except Exception as exc:
            error = exc

        if updated.status != order.status:
            try:
                await self._store.update(updated)
            except Exception as update_error:
                if error is None:
                    raise
                raise AggregateError('error syncing order', [error, update_error]) from error

        if error is not None:
            raise error

    async def _sync(self, order: Order) -> None:
        status = order.status
        if status.url and is_final_state(status.state):
            logger.debug('Order %s is in final state %r', _key(order), status.state)
            return

        issuer = await self._issuers.get(order.spec.issuer_ref, order.metadata.namespace)
        client = await issuer.client()

        if not status.url:
            await self.create_order(client, issuer.config, order)
            return

        if status.challenges is None:
            await self.resume_order_creation(client, issuer.config, order)
            return

        if status.state == State.unknown:
            await self.sync_order_status(client, order)
            raise RetryRequiredError('updated unknown order state. Retrying processing after applying back-off')

        if status.state == State.ready:
            await self.finalize_order(client, order)
            return

        if status.state in (State.pending, State.processing):
            await self.reconcile_challenges(client, order)
            return

        raise UnrecognizedStateError(status.state)

    async def create_order(self, client: AcmeClient, acme_config: AcmeIssuerConfig | None, order: Order) -> None:
        """
        Open a new order with the ACME server and plan its challenges.

        If planning fails the order stays open remotely with its URL recorded;
        :meth:`resume_order_creation` picks it up on the next sync.
        """
        if order.status.url:
            raise OrderAlreadyCreatedError(order.metadata.name)

        identifiers = set(order.spec.dns_names)
        if order.spec.common_name:
            identifiers.add(order.spec.common_name)

        try:
            acme_order = await client.new_order(sorted(identifiers))
        except Exception as exc:
            raise OrderSyncError(f'error creating new order: {exc}') from exc

        logger.info('Created ACME order %s for Order %s', acme_order.uri, _key(order))
        set_order_status(order.status, acme_order, self._clock())
        order.status.challenges = await self._plan_challenges(client, acme_config, order, acme_order)

    async def resume_order_creation(
        self, client: AcmeClient, acme_config: AcmeIssuerConfig | None, order: Order
    ) -> None:
        """Plan the challenges of an order that exists remotely but has none planned."""
        acme_order = await self.sync_order_status(client, order)
        if is_final_state(order.status.state):
            return

        logger.info('Planning challenges for existing ACME order %s', order.status.url)
        order.status.challenges = await self._plan_challenges(client, acme_config, order, acme_order)

    async def _plan_challenges(
        self, client: AcmeClient, acme_config: AcmeIssuerConfig | None, order: Order, acme_order: AcmeOrder
    ) -> list[ChallengeSpec]:
        # all or nothing: any failure leaves status.challenges untouched
        specs = []
        for authorization_uri in acme_order.authorizations:
            authorization = await client.get_authorization(authorization_uri)
            specs.append(challenge_spec_for_authorization(client, order, acme_config, authorization))
        return specs

    async def sync_order_status(self, client: AcmeClient, order: Order) -> AcmeOrder:
        """Fetch the order from the ACME server and copy its state onto the Order status."""
        if not order.status.url:
            raise OrderNotCreatedError()

        # TODO: mark the order as failed when the ACME server no longer knows it (404)
        acme_order = await client.get_order(order.status.url)
        set_order_status(order.status, acme_order, self._clock())
        return acme_order

    async def finalize_order(self, client: AcmeClient, order: Order) -> None:
        """
        Submit the CSR, then re-read the order.

        The status is synced even when finalization fails; a sync failure takes
        precedence over a finalization failure.
        """
        finalize_error: Exception | None = None
        try:
            await client.finalize_order(order.status.finalize_url, order.spec.csr)
        except Exception as exc:
            finalize_error = exc

        try:
            await self.sync_order_status(client, order)
        except Exception as exc:
            raise OrderSyncError(f'error syncing order status: {exc}') from exc

        if finalize_error is not None:
            raise OrderSyncError(f'error finalizing order: {finalize_error}') from finalize_error

    async def reconcile_challenges(self, client: AcmeClient, order: Order) -> None:
        """Ensure Challenges exist for the planned specs and re-check the order once they settle."""
        existing = await self._store.list(Challenge, order.metadata.namespace, challenge_labels_for_order(order))

        to_create = challenge_specs_to_create(order.status.challenges or (), existing)
        logger.info('Need to create %d challenges for Order %s', len(to_create), _key(order))

        errors: list[Exception] = []
        for index, spec in to_create.items():
            try:
                created = await self._store.create(build_challenge(index, order, spec))
            except Exception as exc:
                logger.warning('Failed to create challenge %d for Order %s: %s', index, _key(order), exc)
                errors.append(exc)
                continue
            existing.append(created)

        if errors:
            raise ChallengeCreationError('error ensuring Challenge resources for Order', errors)

        if not should_recheck_order_status(existing):
            logger.info("Waiting for all challenges for Order %s to enter 'ready' state", _key(order))
            return

        await self.sync_order_status(client, order)


def set_order_status(status: OrderStatus, acme_order: AcmeOrder, now: datetime) -> None:
    """Copy the ACME order's state and URLs onto ``status``."""
    # the server's status is stored as-is, without validation
    set_order_state(status, acme_order.status, now)
    status.url = acme_order.uri
    status.finalize_url = acme_order.finalize
    status.certificate_url = acme_order.certificate or ''


def set_order_state(status: OrderStatus, state: str, now: datetime) -> None:
    """
    Set the order state.

    Entering a failure state stamps ``failure_time`` every time, including
    when the order was already failed.
    """
    status.state = state
    if is_failure_state(state):
        status.failure_time = now


def challenge_specs_to_create(specs: Sequence[ChallengeSpec], existing: Sequence[Challenge]) -> dict[int, ChallengeSpec]:
    """
    Planned specs, by index, that still need a Challenge.

    Challenges are matched to specs by DNS name. Scanning stops at the first
    spec that already has a Challenge; later specs are left for a later pass.
    """
    # TODO: decide whether specs after the first existing Challenge should be checked independently
    existing_names = {ch.spec.dns_name for ch in existing}
    to_create = {}
    for index, spec in enumerate(specs):
        if spec.dns_name in existing_names:
            break
        to_create[index] = spec
    return to_create


def should_recheck_order_status(challenges: Sequence[Challenge]) -> bool:
    """
    Whether the ACME order is worth re-reading.

    Any failed or expired Challenge warrants a re-check; otherwise any pending
    or processing Challenge means there is nothing new to learn yet.
    """
    in_progress = any(ch.status.state in (State.pending, State.processing) for ch in challenges)
    failed = any(ch.status.state in (State.failed, State.expired) for ch in challenges)
    return failed or not in_progress


def challenge_labels_for_order(order: Order) -> dict[str, str]:
    return {ORDER_NAME_LABEL: order.metadata.name}


def build_challenge(index: int, order: Order, spec: ChallengeSpec) -> Challenge:
    return Challenge(
        metadata=ObjectMeta(
            name=f'{order.metadata.name}-{index}',
            namespace=order.metadata.namespace,
            labels=challenge_labels_for_order(order),
            owner_references=[
                OwnerReference(api_version=API_VERSION, kind='Order', name=order.metadata.name, uid=order.metadata.uid)
            ],
        ),
        spec=spec,
    )


def _key(order: Order) -> str:
    return f'{order.metadata.namespace}/{order.metadata.name}'
