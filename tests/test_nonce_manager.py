import asyncio

import pytest

from tokenoracle.nonce_manager import IndexSlotManager, SlotError


@pytest.mark.asyncio
async def test_indices_handed_out_in_order():
    manager = IndexSlotManager(3)
    leases = [await manager.acquire_index() for _ in range(3)]
    assert [lease.index for lease in leases] == list(range(3))
    assert manager.available_permits == 0


@pytest.mark.asyncio
async def test_release_returns_permit():
    manager = IndexSlotManager(2)
    lease = await manager.acquire_index()
    assert manager.available_permits == manager.capacity - 1
    await lease.release()
    assert manager.available_permits == manager.capacity


@pytest.mark.asyncio
async def test_context_manager_releases():
    manager = IndexSlotManager(2)
    async with await manager.acquire_index() as lease:
        assert manager.available_permits == manager.capacity - 1
        held = lease.index
    assert manager.available_permits == manager.capacity
    with pytest.raises(SlotError, match="was not allocated"):
        await manager.release_index(held)


@pytest.mark.asyncio
async def test_release_unknown_index_raises():
    manager = IndexSlotManager(2)
    with pytest.raises(SlotError, match="was not allocated"):
        await manager.release_index(1)
    assert manager.available_permits == manager.capacity


@pytest.mark.asyncio
async def test_lease_release_after_manual_release_is_harmless():
    manager = IndexSlotManager(1)
    lease = await manager.acquire_index()
    await manager.release_index(lease.index)
    await lease.release()
    assert manager.available_permits == manager.capacity


@pytest.mark.asyncio
async def test_acquire_waits_until_slot_released():
    manager = IndexSlotManager(1)
    first = await manager.acquire_index()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(manager.acquire_index(), timeout=0.05)
    waiter = asyncio.create_task(manager.acquire_index())
    await asyncio.sleep(0)
    assert not waiter.done()
    await first.release()
    second = await asyncio.wait_for(waiter, timeout=1)
    assert second.index == first.index
    assert manager.available_permits == 0


@pytest.mark.asyncio
async def test_acquire_and_release_nonce():
    manager = IndexSlotManager(2)
    pubkey, index = await manager.acquire_nonce()
    assert index in range(2)
    assert len(pubkey) > 0
    assert manager.available_permits == manager.capacity - 1
    manager.release_nonce(index)
    assert manager.available_permits == manager.capacity


@pytest.mark.asyncio
async def test_out_of_range_nonce_then_empty_pool():
    manager = IndexSlotManager(1)
    _, index = await manager.acquire_nonce()
    manager.release_nonce(index + 5)
    with pytest.raises(SlotError, match="invalid nonce index"):
        await manager.acquire_nonce()
    assert manager.available_permits == manager.capacity
    with pytest.raises(SlotError, match="no free nonce index"):
        await manager.acquire_nonce()


def test_pubkeys_are_unique():
    manager = IndexSlotManager(1)
    keys = {manager.pubkey_for_index(0) for _ in range(20)}
    assert len(keys) == 20


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        IndexSlotManager(-1)