import pytest
from fakes import ISSUER_REF, make_challenge_spec

import acmesync


def _order(name: str = 'example', namespace: str = 'default') -> acmesync.Order:
    return acmesync.Order(
        metadata=acmesync.ObjectMeta(name=name, namespace=namespace),
        spec=acmesync.OrderSpec(csr=b'csr', issuer_ref=ISSUER_REF, dns_names=['a.com']),
    )


def _challenge(name: str, labels=None, owner: acmesync.Order | None = None) -> acmesync.Challenge:
    owner_references = []
    if owner is not None:
        owner_references.append(
            acmesync.OwnerReference(
                api_version=acmesync.API_VERSION, kind='Order', name=owner.metadata.name, uid=owner.metadata.uid
            )
        )
    return acmesync.Challenge(
        metadata=acmesync.ObjectMeta(
            name=name, namespace='default', labels=labels or {}, owner_references=owner_references
        ),
        spec=make_challenge_spec('a.com'),
    )


async def test_create__assigns_uid_and_version(store):
    # act
    order = await store.create(_order())

    # assert
    assert order.metadata.uid
    assert order.metadata.resource_version
    assert await store.get(acmesync.Order, 'default', 'example') == order


async def test_create__name_taken__error(store):
    await store.create(_order())

    with pytest.raises(acmesync.AlreadyExistsError):
        await store.create(_order())


async def test_create__same_name_other_kind_or_namespace__ok(store):
    await store.create(_order())

    await store.create(_order(namespace='other'))
    await store.create(_challenge('example'))

    assert len(await store.list(acmesync.Order, 'default')) == 1


async def test_get__missing__error(store):
    with pytest.raises(acmesync.NotFoundError):
        await store.get(acmesync.Order, 'default', 'missing')


async def test_get__returns_copy(store):
    # arrange
    await store.create(_order())
    order = await store.get(acmesync.Order, 'default', 'example')

    # act
    order.status.url = 'https://acme.test/order/1'

    # assert
    assert (await store.get(acmesync.Order, 'default', 'example')).status.url == ''


async def test_update__bumps_version(store):
    # arrange
    order = await store.create(_order())
    order.status.state = 'pending'

    # act
    updated = await store.update(order)

    # assert
    assert updated.metadata.resource_version != order.metadata.resource_version
    assert updated.metadata.uid == order.metadata.uid
    assert (await store.get(acmesync.Order, 'default', 'example')).status.state == 'pending'


async def test_update__stale_version__conflict(store):
    # arrange
    order = await store.create(_order())
    await store.update(order)

    # act
    with pytest.raises(acmesync.ConflictError):
        await store.update(order)


async def test_update__missing__error(store):
    with pytest.raises(acmesync.NotFoundError):
        await store.update(_order())


async def test_list__selector__only_matching_labels(store):
    # arrange
    await store.create(_challenge('example-0', {acmesync.ORDER_NAME_LABEL: 'example'}))
    await store.create(_challenge('other-0', {acmesync.ORDER_NAME_LABEL: 'other'}))
    await store.create(_challenge('unlabelled'))

    # act
    result = await store.list(acmesync.Challenge, 'default', {acmesync.ORDER_NAME_LABEL: 'example'})

    # assert
    assert [ch.metadata.name for ch in result] == ['example-0']


async def test_delete__owned_objects_garbage_collected(store):
    # arrange
    order = await store.create(_order())
    other = await store.create(_order('other'))
    await store.create(_challenge('example-0', owner=order))
    await store.create(_challenge('example-1', owner=order))
    await store.create(_challenge('other-0', owner=other))

    # act
    await store.delete(acmesync.Order, 'default', 'example')

    # assert
    assert [ch.metadata.name for ch in await store.list(acmesync.Challenge, 'default')] == ['other-0']
    with pytest.raises(acmesync.NotFoundError):
        await store.get(acmesync.Order, 'default', 'example')


async def test_delete__missing__error(store):
    with pytest.raises(acmesync.NotFoundError):
        await store.delete(acmesync.Order, 'default', 'missing')
