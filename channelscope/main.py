"""ChannelScope — application entry point.

Boots the FastAPI internal server and provides the CLI entry point.
"""

import logging

from fastapi import FastAPI

from channelscope.api.routers import router

app = FastAPI(title="ChannelScope Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("channelscope")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, wire collaborators and serve the API."""
    import argparse

    import uvicorn

    from channelscope.api.routers import configure_routers
    from channelscope.config import load_config
    from channelscope.market.binance_client import BinanceClient

    parser = argparse.ArgumentParser(description="ChannelScope S/R channel API")
    parser.add_argument("--port", type=int, help="API port (default: API_PORT)")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--env-file", help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(env_path=args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    configure_routers(config=config, market=BinanceClient(config))

    port = args.port or config.api_port
    logger.info(
        "Starting ChannelScope on port %d (default %s %s).",
        port, config.default_symbol, config.default_interval,
    )
    uvicorn.run(app, host=args.host, port=port, log_level="info")


if __name__ == "__main__":
    _run_cli()
