"""Choosing a challenge for each authorization of an order."""

from collections.abc import Sequence

from acmesync._acme_models import AcmeAuthorization, AcmeChallenge, ChallengeType
from acmesync._client import AcmeClient
from acmesync._exceptions import (
    IssuerNotAcmeError,
    NoAcceptableChallengeError,
    SolverConfigurationNotFoundError,
    UnsupportedChallengeTypeError,
)
from acmesync._resources import AcmeIssuerConfig, ChallengeSpec, DomainSolverConfig, Order, SolverConfig


def challenge_spec_for_authorization(
    client: AcmeClient,
    order: Order,
    acme_config: AcmeIssuerConfig | None,
    authorization: AcmeAuthorization,
) -> ChallengeSpec:
    """
    Plan the challenge to complete for ``authorization``.

    :param client: client used to compute the challenge key.
    :param order: order the authorization belongs to.
    :param acme_config: ACME configuration of the order's issuer.
    :param authorization: authorization fetched from the ACME server.
    """
    solver = solver_config_for_authorization(order.spec.config, authorization)

    if acme_config is None:
        raise IssuerNotAcmeError(order.spec.issuer_ref.name)

    challenge = select_challenge(authorization.challenges, solver, acme_config)
    if challenge is None:
        raise NoAcceptableChallengeError(authorization.identifier.value)

    return ChallengeSpec(
        authz_url=authorization.uri,
        type=challenge.type,
        url=challenge.url,
        dns_name=authorization.identifier.value,
        token=challenge.token,
        key=key_for_challenge(client, challenge),
        config=solver,
        wildcard=authorization.wildcard,
        issuer_ref=order.spec.issuer_ref,
    )


def solver_config_for_authorization(
    configs: Sequence[DomainSolverConfig], authorization: AcmeAuthorization
) -> SolverConfig:
    """First solver configuration listing the authorization's domain (``*.`` prefixed for wildcards)."""
    domain = authorization.identifier.value
    if authorization.wildcard:
        domain = f'*.{domain}'

    for config in configs:
        if domain in config.domains:
            return config.solver

    raise SolverConfigurationNotFoundError(domain)


def select_challenge(
    challenges: Sequence[AcmeChallenge], solver: SolverConfig, acme_config: AcmeIssuerConfig
) -> AcmeChallenge | None:
    # the last acceptable challenge in server order wins
    selected = None
    for challenge in challenges:
        if challenge.type == ChallengeType.http01 and solver.http01 is not None and acme_config.http01 is not None:
            selected = challenge
        elif challenge.type == ChallengeType.dns01 and solver.dns01 is not None and acme_config.dns01 is not None:
            selected = challenge
    return selected


def key_for_challenge(client: AcmeClient, challenge: AcmeChallenge) -> str:
    if challenge.type == ChallengeType.http01:
        return client.get_http_challenge_validation(challenge.token)
    if challenge.type == ChallengeType.dns01:
        return client.get_dns_challenge_validation(challenge.token)
    raise UnsupportedChallengeTypeError(challenge.type)
