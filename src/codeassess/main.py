"""Application entry points for the CodeAssess backend server."""

import asyncio

from codeassess.app import App
from codeassess.config import Config
from codeassess.logging import setup_logging
from codeassess.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


async def _issue_admin_link(app: App) -> str:
    async with app.lifespan():
        return await app.issue_admin_link()


def admin_link() -> None:
    """Print a one-time sign-in link for the configured admin email."""
    config = Config()
    setup_logging(config.debug)
    print(asyncio.run(_issue_admin_link(App(config))))  # noqa: T201


if __name__ == "__main__":
    main()
