import asyncio

import pytest

from smack_talk.services.broadcast import BroadcastError, LocalBroadcastChannel


@pytest.mark.asyncio
async def test_publish_delivers_envelope_to_every_subscriber_including_publisher():
    channel = LocalBroadcastChannel()
    first = await channel.connect("/game")
    second = await channel.connect("/game")
    received_first, received_second = [], []
    first.subscribe(received_first.append, lambda exc: None)
    second.subscribe(received_second.append, lambda exc: None)

    await channel.publish("/game", {"id": 1, "text": "hi"})
    # Delivery happens on a later loop turn.
    assert received_first == []
    await asyncio.sleep(0)

    assert received_first == [{"event": {"id": 1, "text": "hi"}}]
    assert received_second == [{"event": {"id": 1, "text": "hi"}}]
    assert received_first[0] is not received_second[0]


@pytest.mark.asyncio
async def test_channels_are_isolated():
    channel = LocalBroadcastChannel()
    handle = await channel.connect("/a")
    received = []
    handle.subscribe(received.append, lambda exc: None)

    await channel.publish("/b", {"id": 1})
    await asyncio.sleep(0)
    assert received == []


@pytest.mark.asyncio
async def test_unsubscribe_and_close_stop_delivery():
    channel = LocalBroadcastChannel()
    handle = await channel.connect("/game")
    received = []
    subscription = handle.subscribe(received.append, lambda exc: None)
    assert channel.subscriber_count("/game") == 1

    subscription.unsubscribe()
    assert channel.subscriber_count("/game") == 0

    handle.subscribe(received.append, lambda exc: None)
    await handle.close()
    await channel.publish("/game", {"id": 2})
    await asyncio.sleep(0)

    assert received == []
    assert channel.subscriber_count("/game") == 0
    with pytest.raises(BroadcastError):
        handle.subscribe(received.append, lambda exc: None)


@pytest.mark.asyncio
async def test_handler_failure_is_reported_to_error_callback():
    channel = LocalBroadcastChannel()
    handle = await channel.connect("/game")
    errors = []

    def broken(envelope):
        raise KeyError("bad")

    handle.subscribe(broken, errors.append)
    await channel.publish("/game", {"id": 3})
    await asyncio.sleep(0)

    assert len(errors) == 1
    assert isinstance(errors[0], KeyError)
