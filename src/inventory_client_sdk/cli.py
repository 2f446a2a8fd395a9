from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from .auth_store import TokenStore
from .config import load_config
from .exceptions import ApiError, AuthError
from .logger import configure_logging
from .session import ApiSession


async def cmd_login(session: ApiSession, args: argparse.Namespace) -> dict[str, Any]:
    user = await session.sign_in(args.email, args.password)
    return {"user": user.model_dump(by_alias=True)}


async def cmd_me(session: ApiSession, args: argparse.Namespace) -> dict[str, Any]:
    user = await session.restore()
    if user is None:
        raise AuthError(code="AUTH_MISSING", message="No stored session; run login first")
    return user.model_dump(by_alias=True)


async def cmd_logout(session: ApiSession, args: argparse.Namespace) -> dict[str, Any]:
    await session.sign_out()
    return {"signed_out": True}


COMMANDS = {"login": cmd_login, "me": cmd_me, "logout": cmd_logout}


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    config = load_config(args.env_file)
    session = ApiSession(config, store=TokenStore(app_name=args.app_name))
    try:
        if args.command == "logout":
            # Reload stored credentials so the refresh token can be revoked.
            stored = session.store.load()
            if stored:
                session.client.set_tokens(stored.access_token, stored.refresh_token)
        return await COMMANDS[args.command](session, args)
    finally:
        await session.client.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inventory API client smoke CLI")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--app-name", default="inventory")
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", required=True)

    subparsers.add_parser("me")
    subparsers.add_parser("logout")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.verbose:
        configure_logging()
    try:
        result = asyncio.run(_run(args))
    except ApiError as exc:
        print(json.dumps({"error": exc.code, "message": exc.message}, indent=2))
        raise SystemExit(1) from exc
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
