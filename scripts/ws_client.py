"""
Manual client for the live typing websocket.

Usage:
    python scripts/ws_client.py [--url URL] [--token TOKEN]

Types a small snippet key by key against a running server, prints every
update, and posts the resulting submission to /api/attempt when a token is
given.
"""

import argparse
import asyncio
import json

import httpx
import websockets

SNIPPET = "def f():\n    pass"


async def type_snippet(url: str) -> dict:
    async with websockets.connect(url) as ws:
        print(f"← {await ws.recv()}")

        await ws.send(json.dumps({
            "type": "start_session",
            "snippet_id": "demo",
            "content": SNIPPET,
            "mode": "practice",
        }))
        print(f"← {await ws.recv()}")

        i = 0
        while i < len(SNIPPET):
            ch = SNIPPET[i]
            key = "Enter" if ch == "\n" else ch
            await ws.send(json.dumps({"type": "key", "key": key}))
            update = json.loads(await ws.recv())
            print(f"→ {key!r:8} ← input={update['input']!r} wpm={update['stats']['wpm']}")
            i = update["caret"]
            await asyncio.sleep(0.15)

            if update["complete"]:
                done = json.loads(await ws.recv())
                print(f"← {done}")
                return done["submission"]
    return {}


def main():
    parser = argparse.ArgumentParser(description="Typrr websocket client")
    parser.add_argument("--url", default="ws://localhost:8000/ws/session")
    parser.add_argument("--token", help="Bearer token for submitting the attempt")
    args = parser.parse_args()

    submission = asyncio.run(type_snippet(args.url))
    if submission and args.token:
        base = args.url.replace("ws://", "http://").replace("wss://", "https://").rsplit("/ws/", 1)[0]
        response = httpx.post(
            f"{base}/api/attempt",
            json=submission,
            headers={"Authorization": f"Bearer {args.token}"},
        )
        print(f"POST /api/attempt → {response.status_code} {response.json()}")


if __name__ == "__main__":
    main()
