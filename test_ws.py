import asyncio

from classroom_qa.ws_manager import ConnectionManager


class FakeSocket:
    def __init__(self, broken=False):
        self.sent = []
        self.broken = broken

    async def accept(self):
        pass

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(message)


def test_ping_pong(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def token_of(headers):
    return headers["Authorization"].split()[1]


def test_direct_message_reaches_recipient_socket(api, client):
    alice = api.make_user("alice")
    bobby = api.make_user("bobby")
    chat_id = client.post("/chats", json={"username": "bobby"}, headers=alice).json()["chat_id"]

    # one event loop for the socket and the requests
    with client:
        with client.websocket_connect(f"/ws?token={token_of(bobby)}") as ws:
            r = client.post(f"/chats/{chat_id}/messages", json={"body": "lab at 3?"}, headers=alice)
            assert r.status_code == 200
            event = ws.receive_json()

    assert event["type"] == "new_message"
    assert event["message"]["body"] == "lab at 3?"
    assert event["message"]["sender_name"] == "alice"
    assert event["message"]["chat_id"] == chat_id


def test_new_question_reaches_anonymous_socket(api, client):
    alice = api.make_user("alice")

    with client:
        with client.websocket_connect("/ws") as ws:
            q = api.ask(alice, "What is a closure?")
            event = ws.receive_json()

    assert event["type"] == "new_question"
    assert event["question"]["question_id"] == q["question_id"]
    assert event["question"]["body"] == "What is a closure?"


def test_broadcast_and_direct_delivery():
    mgr = ConnectionManager()
    anon, alice, bobby = FakeSocket(), FakeSocket(), FakeSocket()

    async def run():
        await mgr.connect(anon)
        await mgr.connect(alice, user_id=1)
        await mgr.connect(bobby, user_id=2)
        await mgr.broadcast({"type": "new_question"})
        await mgr.send_to_users([2], {"type": "new_message"})

    asyncio.run(run())
    assert anon.sent == [{"type": "new_question"}]
    assert alice.sent == [{"type": "new_question"}]
    assert bobby.sent == [{"type": "new_question"}, {"type": "new_message"}]


def test_broken_sockets_are_dropped():
    mgr = ConnectionManager()
    good, bad = FakeSocket(), FakeSocket(broken=True)

    async def run():
        await mgr.connect(good, user_id=1)
        await mgr.connect(bad, user_id=1)
        await mgr.send_to_users([1], {"type": "new_message"})

    asyncio.run(run())
    assert good.sent == [{"type": "new_message"}]
    assert bad not in mgr.active_connections
    assert mgr.user_connections == {1: [good]}

    mgr.disconnect(good)
    assert mgr.user_connections == {}
