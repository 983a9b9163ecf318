"""
Chat Relay Client Example
Interactive client and scripted scenarios for manual testing
"""

import asyncio
import json
import websockets
import time
from typing import Optional, Any
import argparse
import sys

class ChatClient:
    """WebSocket chat relay client"""

    def __init__(self, username: str, room: str, server_url: str = "ws://localhost:3000/ws"):
        self.username = username
        self.room = room
        self.server_url = server_url
        self.websocket: Optional[Any] = None
        self.connection_id: Optional[str] = None
        self.running = False

    async def connect(self) -> bool:
        """Connect and read the connection id the server assigns"""
        try:
            self.websocket = await websockets.connect(self.server_url)
            frame = json.loads(await self.websocket.recv())
            if frame.get("type") == "connected":
                self.connection_id = frame["data"]["connectionId"]
            print(f"✅ Connected to {self.server_url} as {self.connection_id}")
            return True
        except (OSError, websockets.exceptions.WebSocketException) as e:
            print(f"❌ Connection failed: {e}")
            return False

    async def send_event(self, event_type: str, **fields) -> bool:
        if not self.websocket:
            return False

        try:
            await self.websocket.send(json.dumps({"type": event_type, **fields}))
            return True
        except websockets.exceptions.ConnectionClosed as e:
            print(f"❌ Send failed: {e}")
            return False

    async def join_room(self) -> bool:
        """Join the configured room and wait for confirmation"""
        if not await self.send_event("join", username=self.username, room=self.room):
            return False
        print(f"📤 Sent join request: {self.username} -> {self.room}")

        while True:
            frame = json.loads(await self.websocket.recv())
            event, data = frame.get("type"), frame.get("data")

            if event == "join_success":
                self.room = data["room"]
                print(f"✅ Joined {data['room']} as {data['username']} ({data['usersCount']} online)")
                return True
            elif event == "error":
                print(f"❌ Join failed: {data.get('message')}")
                return False
            # history, notices and user lists arrive before the confirmation
            self.print_event(event, data)

    async def send_message(self, message: str) -> bool:
        return await self.send_event("chat_message", message=message)

    def print_event(self, event: str, data: Any):
        if event == "received_message":
            stamp = time.strftime('%H:%M:%S', time.localtime(data.get("timestamp", 0) / 1000))
            print(f"📨 [{stamp}] {data.get('username')}: {data.get('message')}")
        elif event == "message_history":
            print(f"📜 History ({len(data)} messages)")
            for message in data:
                print(f"   {message.get('username')}: {message.get('message')}")
        elif event in ("user_joined", "user_left"):
            print(f"ℹ️  {data.get('message')}")
        elif event == "users_list":
            print("👥 " + ", ".join(f"{u['username']} ({u['connectionId']})" for u in data))
        elif event == "rooms_list":
            print(f"📋 Rooms ({len(data)}):")
            for room in data:
                print(f"   • {room['name']} ({room['usersCount']} users)")
        elif event in ("private_message_received", "private_message_sent"):
            print(f"🔒 {data['fromUsername']} -> {data['toUsername']}: {data['message']}")
        elif event == "user_typing":
            if data.get("isTyping"):
                print(f"✏️  {data.get('username')} is typing...")
        elif event == "room_changed":
            self.room = data["room"]
            print(f"🚪 Now in {data['room']} ({data['usersCount']} online)")
        elif event == "error":
            print(f"❌ Server error: {data.get('message')}")
        else:
            print(f"❓ Unknown event: {event}")

    async def listen_for_messages(self):
        """Print incoming events until stopped"""
        if not self.websocket:
            return

        while self.running:
            try:
                raw = await asyncio.wait_for(self.websocket.recv(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except websockets.exceptions.ConnectionClosed:
                print("🔌 Connection closed by server")
                break

            frame = json.loads(raw)
            self.print_event(frame.get("type"), frame.get("data"))

    async def disconnect(self):
        self.running = False
        if self.websocket:
            await self.websocket.close()
            print("🔌 Disconnected from server")

    async def run_interactive(self):
        """Run interactive chat session"""
        if not await self.connect():
            return

        if not await self.join_room():
            await self.disconnect()
            return

        self.running = True
        listen_task = asyncio.create_task(self.listen_for_messages())

        try:
            print("\n🎮 Interactive mode started!")
            print("Commands: /users, /rooms, /room <name>, /pm <connectionId> <text>, /quit")
            print("-" * 50)

            while self.running:
                try:
                    user_input = (await asyncio.to_thread(input, f"{self.username}@{self.room}> ")).strip()
                except (KeyboardInterrupt, EOFError):
                    break

                if not user_input:
                    continue

                if user_input == "/quit":
                    break
                elif user_input == "/users":
                    await self.send_event("get_users")
                elif user_input == "/rooms":
                    await self.send_event("get_rooms")
                elif user_input.startswith("/room "):
                    await self.send_event("change_room", room=user_input[6:].strip())
                elif user_input.startswith("/pm "):
                    _, target, *words = user_input.split(" ")
                    await self.send_event("private_message", targetConnectionId=target, message=" ".join(words))
                else:
                    await self.send_message(user_input)

        finally:
            self.running = False
            listen_task.cancel()
            await self.disconnect()

async def run_listening(client: ChatClient, script):
    """Connect, join, run a coroutine while printing events, then leave"""
    if not (await client.connect() and await client.join_room()):
        return
    client.running = True
    listen_task = asyncio.create_task(client.listen_for_messages())
    try:
        await script(client)
    finally:
        client.running = False
        listen_task.cancel()
        await client.disconnect()

async def scenario_rooms(server_url: str):
    """Scenario: messaging, escaping and room change"""
    print("\n🧪 Scenario: rooms")
    print("=" * 60)

    async def alice(client: ChatClient):
        await asyncio.sleep(1)
        await client.send_message("<script>")
        await asyncio.sleep(2)
        await client.send_event("change_room", room="gaming")
        await asyncio.sleep(2)
        await client.send_event("get_rooms")
        await asyncio.sleep(1)

    async def bob(client: ChatClient):
        await asyncio.sleep(1.5)
        await client.send_message("Hey Alice!")
        await asyncio.sleep(4)

    await asyncio.gather(
        run_listening(ChatClient("alice", "tech", server_url), alice),
        run_listening(ChatClient("bob", "tech", server_url), bob),
    )
    print("✅ Scenario completed")

async def scenario_duplicate_username(server_url: str):
    """Scenario: the second 'alice' in a room is rejected"""
    print("\n🧪 Scenario: duplicate username")
    print("=" * 60)

    async def hold(client: ChatClient):
        await asyncio.sleep(2)

    async def second_alice():
        await asyncio.sleep(0.5)
        client = ChatClient("alice", "tech", server_url)
        if await client.connect():
            await client.join_room()
            await client.disconnect()

    await asyncio.gather(
        run_listening(ChatClient("alice", "tech", server_url), hold),
        second_alice(),
    )
    print("✅ Scenario completed")

async def scenario_rate_limit(server_url: str):
    """Scenario: the 11th message inside ten seconds is refused"""
    print("\n🧪 Scenario: rate limit")
    print("=" * 60)

    async def flood(client: ChatClient):
        for i in range(11):
            await client.send_message(f"message {i + 1}")
        await asyncio.sleep(1)

    await run_listening(ChatClient("bob", "tech", server_url), flood)
    print("✅ Scenario completed")

SCENARIOS = {
    "rooms": scenario_rooms,
    "duplicate": scenario_duplicate_username,
    "ratelimit": scenario_rate_limit,
}

async def main():
    """Main function with command line interface"""
    parser = argparse.ArgumentParser(description="Chat Relay Client")
    parser.add_argument("--username", default="testuser", help="Username")
    parser.add_argument("--room", default="general", help="Chat room")
    parser.add_argument("--server", default="ws://localhost:3000/ws", help="Server URL")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), help="Run a scripted scenario")

    args = parser.parse_args()

    if args.scenario:
        await SCENARIOS[args.scenario](args.server)
    else:
        client = ChatClient(args.username, args.room, args.server)
        await client.run_interactive()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Client error: {e}")
        sys.exit(1)
