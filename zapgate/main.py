"""zapgate CLI entry point."""

import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import httpx

from auth.store import CredentialStore
from config.settings import get_settings

from .tui import print_error, print_groups, print_info, print_success


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def default_url() -> str:
    settings = get_settings()
    return f"http://localhost:{settings.port}"


async def request_json(
    method: str, url: str, **kwargs
) -> Tuple[Optional[int], Optional[object]]:
    """Call the gateway and return (status_code, json_body).

    Returns (None, None) when the gateway cannot be reached.
    """
    async with httpx.AsyncClient() as client:
        try:
            response = await client.request(method, url, timeout=60.0, **kwargs)
        except httpx.RequestError as e:
            print_error(f"Failed to connect to gateway: {e}")
            return None, None
    try:
        return response.status_code, response.json()
    except ValueError:
        return response.status_code, {"error": response.text}


def _fail(status_code: Optional[int], body) -> None:
    if status_code is not None:
        error = body.get("error", "Unknown error") if isinstance(body, dict) else body
        print_error(f"Gateway error ({status_code}): {error}")
    sys.exit(1)


@click.group()
@click.option(
    "--url",
    envvar="ZAPGATE_URL",
    default=None,
    help="Gateway base URL (default: http://localhost:<PORT>).",
)
@click.pass_context
def cli(ctx, url: Optional[str]):
    """zapgate - WhatsApp group gateway for automation tools"""
    ctx.ensure_object(dict)
    ctx.obj["url"] = (url or default_url()).rstrip("/")


@cli.command()
@click.option("--host", default=None, help="Bind address.")
@click.option("--port", type=int, default=None, help="Bind port.")
def serve(host: Optional[str], port: Optional[int]):
    """Run the gateway in the foreground."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.app:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@cli.command()
@click.pass_context
def status(ctx):
    """Show the WhatsApp session state."""
    status_code, body = run_async(request_json("GET", f"{ctx.obj['url']}/status"))
    if status_code != 200:
        _fail(status_code, body)

    print_info(f"State: {body['state']}")
    print_info(f"Ready: {'yes' if body['ready'] else 'no'}")
    if body.get("logged_out"):
        print_info("Session logged out. Run `zapgate logout` and restart to pair again.")
    if body.get("pairing_challenge"):
        print_info("Waiting for pairing. QR payload:")
        print_info(body["pairing_challenge"])


@cli.command()
@click.pass_context
def groups(ctx):
    """List the groups the connected account participates in."""
    status_code, body = run_async(request_json("GET", f"{ctx.obj['url']}/groups"))
    if status_code != 200:
        _fail(status_code, body)
    print_groups(body)


@cli.command()
@click.argument("destination")
@click.option("--message", "-m", default=None, help="Text, or caption when sending an image.")
@click.option(
    "--image",
    "-i",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Image file to send.",
)
@click.pass_context
def send(ctx, destination: str, message: Optional[str], image: Optional[Path]):
    """Send a message to a group by id or name."""
    if not message and image is None:
        raise click.UsageError("Provide --message and/or --image")

    data = {"destination": destination}
    if message:
        data["message"] = message

    files = None
    if image is not None:
        media_type = mimetypes.guess_type(image.name)[0] or "application/octet-stream"
        files = {"image": (image.name, image.read_bytes(), media_type)}

    status_code, body = run_async(
        request_json("POST", f"{ctx.obj['url']}/send", data=data, files=files)
    )
    if status_code != 200:
        _fail(status_code, body)
    print_success(f"Sent (id: {body.get('id') or 'unknown'})")


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def logout(yes: bool):
    """Clear stored WhatsApp credentials."""
    store = CredentialStore(get_settings().auth_dir)
    if not store.exists():
        print_info("No stored credentials")
        return

    if not yes:
        click.confirm(f"Remove stored credentials in {store.directory}?", abort=True)

    store.clear()
    print_success("Credentials cleared. Restart the gateway and scan the new QR code.")


if __name__ == "__main__":
    cli()
