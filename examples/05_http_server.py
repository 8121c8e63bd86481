"""
HTTP Server Example

Serves a tiny service through svcgate.

- Each TCP connection is handled in its own task of the TaskGroup.
- Each request is extracted into a Request and handed to `service`.
- `set-cookie` headers in the Response become real cookies.

Run:
  python examples/05_http_server.py

Then try:
  curl -i http://127.0.0.1:8080/
  curl -i http://127.0.0.1:8080/login
  curl -i -X POST http://127.0.0.1:8080/echo -d 'hello there'
"""

from __future__ import annotations

import anyio

from svcgate import Request, Response, start
from svcgate.log import setup_logging


async def service(req: Request) -> Response:
    match req.path:
        case "/":
            return Response.text("hello from svcgate\n")
        case "/login":
            return Response.json(
                {"ok": True},
                headers=[
                    ("set-cookie", "session=abc123; Max-Age=3600; Path=/; HttpOnly"),
                    ("set-cookie", "theme=dark; Path=/"),
                ],
            )
        case "/echo":
            # Echo the raw body bytes back.
            return Response(
                status=200,
                headers=[("content-type", req.header("content-type", "application/octet-stream"))],
                body=req.body,
            )
        case _:
            return Response.text("not found", status=404)


async def main() -> None:
    setup_logging("info")
    async with anyio.create_task_group() as tg:
        await start(service, 8080, task_group=tg)

        print("Listening on http://127.0.0.1:8080")
        print("Press Ctrl-C to stop.")

        # Keep the app alive.
        await anyio.sleep_forever()


if __name__ == "__main__":
    anyio.run(main)
