import threading

import pytest

from rinexcollector.channel import Channel, ChannelClosed


def test_messages_are_received_in_order() -> None:
    channel: Channel[int] = Channel(3)
    for i in range(3):
        channel.send(i)

    assert [channel.recv(timeout=0) for _ in range(3)] == [0, 1, 2]


def test_recv_times_out() -> None:
    channel: Channel[int] = Channel(1)

    assert channel.recv(timeout=0.01) is None


def test_try_send_fails_when_full() -> None:
    channel: Channel[int] = Channel(1)

    assert channel.try_send(1)
    assert not channel.try_send(2)
    assert channel.drain() == [1]


def test_send_blocks_until_there_is_room() -> None:
    channel: Channel[int] = Channel(1)
    channel.send(1)

    sender = threading.Thread(target=channel.send, args=(2,))
    sender.start()
    sender.join(0.2)
    assert sender.is_alive()

    assert channel.recv(timeout=1) == 1
    sender.join(1)
    assert not sender.is_alive()
    assert channel.recv(timeout=1) == 2


def test_close_unblocks_senders() -> None:
    channel: Channel[int] = Channel(1)
    channel.send(1)
    errors: list[Exception] = []

    def send() -> None:
        try:
            channel.send(2)
        except ChannelClosed as e:
            errors.append(e)

    sender = threading.Thread(target=send)
    sender.start()
    channel.close()
    sender.join(1)

    assert not sender.is_alive()
    assert len(errors) == 1


def test_closed_channel_delivers_pending_messages() -> None:
    channel: Channel[int] = Channel(2)
    channel.send(1)
    channel.close()

    assert channel.closed
    with pytest.raises(ChannelClosed):
        channel.send(2)
    with pytest.raises(ChannelClosed):
        channel.try_send(2)

    assert channel.recv(timeout=0) == 1
    with pytest.raises(ChannelClosed):
        channel.recv(timeout=0)
