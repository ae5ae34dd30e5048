"""chathub CLI — run the hub, mint dev tokens, talk to a running server.

Usage:
    chathub serve                      # Run the API + push channel (uvicorn)
    chathub token 7                    # Print a JWT for user 7
    chathub send "hello there"         # Chat: store message, print the reply
    chathub send --no-reply "note"     # Store a message without a completion
    chathub history                    # Conversation, oldest first
    chathub search "deploy"            # Case-insensitive content search
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("CHATHUB_API_URL", DEFAULT_API_URL).rstrip("/")


def _token() -> str:
    token = os.environ.get("CHATHUB_TOKEN")
    if not token:
        click.secho(
            "Error: CHATHUB_TOKEN not set (mint one with `chathub token USER_ID`)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return token


def _client() -> httpx.AsyncClient:
    """Build an authenticated async HTTP client for the chathub API."""
    return httpx.AsyncClient(
        base_url=_api_url(),
        headers={"Authorization": f"Bearer {_token()}"},
        timeout=60.0,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    invoked from an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(response: httpx.Response) -> None:
    """Print the API's error detail and exit non-zero."""
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    click.secho(f"Error {response.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _print_messages(messages: list[dict], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(messages, indent=2, default=str))
        return
    if not messages:
        click.echo("No messages.")
        return
    for m in messages:
        who = click.style(f"{m['role']:>9}", fg="cyan" if m["role"] == "user" else "green")
        flags = ""
        if m.get("favorite"):
            flags += " *"
        if m.get("edited"):
            flags += " (edited)"
        click.echo(f"#{m['id']:<5} {who}: {m['content']}{flags}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="chathub")
def main():
    """chathub — real-time chat message hub."""


# ---------------------------------------------------------------------------
# chathub serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: CHATHUB_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: CHATHUB_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP API and WebSocket push channel."""
    import uvicorn

    from chathub.config import settings

    uvicorn.run(
        "chathub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# chathub token
# ---------------------------------------------------------------------------


@main.command()
@click.argument("user_id", type=int)
@click.option("--minutes", "-m", type=int, default=None, help="Lifetime override")
def token(user_id: int, minutes: Optional[int]):
    """Mint an access token for USER_ID (signed with CHATHUB_JWT_SECRET)."""
    from chathub.auth.jwt import create_access_token

    if user_id <= 0:
        raise click.BadParameter("must be a positive integer", param_hint="USER_ID")
    click.echo(create_access_token(user_id, expires_minutes=minutes))


# ---------------------------------------------------------------------------
# chathub send
# ---------------------------------------------------------------------------


@main.command()
@click.argument("message")
@click.option("--no-reply", is_flag=True, help="Store only, skip the assistant")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable, --no-reply only)")
def send(message: str, no_reply: bool, tags: tuple[str, ...]):
    """Send MESSAGE. Prints the assistant's reply unless --no-reply."""
    _run(_send_impl(message, no_reply, list(tags)))


async def _send_impl(message: str, no_reply: bool, tags: list[str]):
    async with _client() as c:
        if no_reply:
            r = await c.post("/api/v1/messages", json={"content": message, "tags": tags})
            if r.status_code != 201:
                _fail(r)
            click.echo(f"Stored message #{r.json()['id']}")
            return

        r = await c.post("/api/v1/chat", json={"message": message})
        if r.status_code != 200:
            _fail(r)
        click.echo(r.json()["response"])


# ---------------------------------------------------------------------------
# chathub history / search
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
def history(as_json: bool):
    """Show the conversation, oldest first."""
    _run(_get_messages("/api/v1/messages", {}, as_json))


@main.command()
@click.argument("query")
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
def search(query: str, as_json: bool):
    """Find messages containing QUERY (case-insensitive)."""
    _run(_get_messages("/api/v1/messages/search", {"q": query}, as_json))


async def _get_messages(path: str, params: dict, as_json: bool):
    async with _client() as c:
        r = await c.get(path, params=params)
        if r.status_code != 200:
            _fail(r)
        _print_messages(r.json(), as_json)


if __name__ == "__main__":
    main()
