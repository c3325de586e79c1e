import re

import pytest
from httpx import AsyncClient
from fastapi import status


CLOCK_PATTERN = re.compile(r"^\d{2}:\d{2}$")


def join(websocket, name, room_id="default", color="#3b82f6"):
    websocket.send_json({"type": "join-room", "roomId": room_id, "user": {"name": name, "color": color}})


class TestFullSessionFlow:
    """WebSocket 전체 세션 플로우 통합 테스트"""

    def test_complete_session_flow(self, ws_client):
        """
        전체 세션 플로우 테스트:
        1. A 참가 → 시드 상태 수신
        2. B 참가 → A는 user-joined 수신
        3. A 채팅 → A, B 모두 같은 메시지 수신
        4. B 토큰 이동 → A만 token-moved 수신
        5. B 연결 해제 → A는 user-left 수신
        6. C 참가 → 지금까지의 기록을 그대로 수신
        """
        with ws_client.websocket_connect("/ws") as alice:
            # 1. A 참가
            join(alice, "Alice", color="#f00")
            state = alice.receive_json()
            assert state["type"] == "room-state"
            assert [m["id"] for m in state["messages"]] == ["system-1"]
            assert state["messages"][0]["text"] == "セッション開始！"
            assert [t["id"] for t in state["tokens"]] == ["token-1", "token-2"]
            assert state["users"] == [{"name": "Alice", "color": "#f00"}]

            with ws_client.websocket_connect("/ws") as bob:
                # 2. B 참가
                join(bob, "Bob", color="#0f0")
                bob_state = bob.receive_json()
                assert bob_state["type"] == "room-state"
                assert len(bob_state["users"]) == 2

                joined = alice.receive_json()
                assert joined == {
                    "type": "user-joined",
                    "name": "Bob",
                    "users": [{"name": "Alice", "color": "#f00"}, {"name": "Bob", "color": "#0f0"}],
                }

                # 3. A 채팅
                alice.send_json({"type": "chat-message", "sender": "Alice", "text": "hello", "channel": "main"})
                from_alice = alice.receive_json()
                from_bob = bob.receive_json()
                assert from_alice == from_bob
                assert from_alice["type"] == "chat-message"
                assert from_alice["id"] == "msg-2"
                assert from_alice["text"] == "hello"
                assert CLOCK_PATTERN.match(from_alice["timestamp"])

                # 4. B 토큰 이동 (B에게는 에코 없음)
                bob.send_json({"type": "token-move", "tokenId": "token-1", "x": 10, "y": 20})
                assert alice.receive_json() == {"type": "token-moved", "tokenId": "token-1", "x": 10, "y": 20}

                bob.send_json({"type": "chat-message", "text": "moved it"})
                next_for_bob = bob.receive_json()
                assert next_for_bob["type"] == "chat-message"
                assert next_for_bob["sender"] == "Bob"
                assert alice.receive_json()["id"] == "msg-3"

            # 5. B 연결 해제
            left = alice.receive_json()
            assert left == {"type": "user-left", "name": "Bob", "users": [{"name": "Alice", "color": "#f00"}]}

            # 6. C 참가
            with ws_client.websocket_connect("/ws") as carol:
                join(carol, "Carol")
                carol_state = carol.receive_json()
                assert [m["text"] for m in carol_state["messages"]] == ["セッション開始！", "hello", "moved it"]
                assert carol_state["tokens"][0] == {
                    "id": "token-1", "name": "Hero", "x": 10, "y": 20, "color": "#3b82f6",
                }
                assert [u["name"] for u in carol_state["users"]] == ["Alice", "Carol"]

    def test_rooms_are_isolated(self, ws_client):
        """다른 룸의 이벤트는 전달되지 않음"""
        with ws_client.websocket_connect("/ws") as alice, ws_client.websocket_connect("/ws") as bob:
            join(alice, "Alice", room_id="one")
            alice.receive_json()
            join(bob, "Bob", room_id="two")
            bob.receive_json()

            alice.send_json({"type": "token-add", "name": "Goblin", "x": 1, "y": 2})
            added = alice.receive_json()
            assert added["type"] == "token-added"
            assert added["id"] == "token-3"

            bob.send_json({"type": "chat-message", "text": "anyone?"})
            frame = bob.receive_json()
            assert frame["type"] == "chat-message"
            assert frame["id"] == "msg-2"

    def test_bad_frames_do_not_close_connection(self, ws_client):
        """잘못된 프레임은 버려지고 연결은 유지됨"""
        with ws_client.websocket_connect("/ws") as websocket:
            websocket.send_text("{not json")
            websocket.send_json({"type": "token-delete", "tokenId": "token-1"})
            websocket.send_json({"type": "chat-message", "text": "before join"})
            websocket.send_json(["join-room"])

            join(websocket, "Alice")
            state = websocket.receive_json()

            assert state["type"] == "room-state"
            assert len(state["messages"]) == 1

    def test_malformed_join_uses_defaults(self, ws_client):
        with ws_client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "join-room", "roomId": 5, "user": "nobody"})
            state = websocket.receive_json()

            assert state["users"] == [{"name": "Anonymous", "color": "#3b82f6"}]


class TestHttpEndpoints:
    """HTTP 엔드포인트 테스트"""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "tabletop-relay"
        assert body["rooms"] == 0
        assert body["connections"] == 0

    @pytest.mark.asyncio
    async def test_probes(self, client: AsyncClient):
        ready = await client.get("/health/ready")
        live = await client.get("/health/live")

        assert ready.json() == {"status": "ready"}
        assert live.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test_unknown_room_status(self, client: AsyncClient, app):
        """조회는 룸을 생성하지 않음"""
        response = await client.get("/rooms/nowhere/status")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert "nowhere" not in app.state.registry

    @pytest.mark.asyncio
    async def test_room_status_and_list(self, client: AsyncClient, app):
        room = app.state.registry.get_or_create("table-1")
        room.add_user("conn-a", "Alice", "#f00")

        status_response = await client.get("/rooms/table-1/status")
        list_response = await client.get("/rooms")

        assert status_response.status_code == status.HTTP_200_OK
        body = status_response.json()
        assert body["roomId"] == "table-1"
        assert body["users"] == [{"name": "Alice", "color": "#f00"}]
        assert body["messageCount"] == 1
        assert body["tokenCount"] == 2
        assert body["connectionCount"] == 0
        assert body["isActive"] is True

        assert list_response.json() == [
            {"roomId": "table-1", "userCount": 1, "messageCount": 1, "tokenCount": 2}
        ]
