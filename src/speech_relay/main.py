"""CLI entrypoint for running the relay with uvicorn."""

from __future__ import annotations

import uvicorn

from speech_relay.config import get_settings


def main() -> None:
    """Run the ASGI server."""

    settings = get_settings()
    uvicorn.run(
        "speech_relay.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":  # pragma: no cover - manual invocation
    main()
