# classroom_qa/ws_manager.py
from typing import Dict, List, Optional, Iterable
from fastapi import WebSocket

class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []
        # user_id -> sockets opened with a valid token
        self.user_connections: Dict[int, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: Optional[int] = None):
        await websocket.accept()
        self.active_connections.append(websocket)
        if user_id is not None:
            self.user_connections.setdefault(user_id, []).append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        for user_id, conns in list(self.user_connections.items()):
            if websocket in conns:
                conns.remove(websocket)
            if not conns:
                del self.user_connections[user_id]

    async def broadcast(self, message: dict):
        for conn in list(self.active_connections):
            try:
                await conn.send_json(message)
            except Exception:
                # drop bad connection
                self.disconnect(conn)

    async def send_to_users(self, user_ids: Iterable[int], message: dict):
        for user_id in set(user_ids):
            for conn in list(self.user_connections.get(user_id, [])):
                try:
                    await conn.send_json(message)
                except Exception:
                    self.disconnect(conn)

manager = ConnectionManager()
