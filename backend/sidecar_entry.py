"""Sidecar entry point: launches the entity scorer's FastAPI app.

Usage:
    python sidecar_entry.py --port 12345
"""

import argparse
import logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Narrative Entity Scorer Sidecar")
    parser.add_argument("--port", type=int, default=8000, help="HTTP 监听端口")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="绑定地址")
    args = parser.parse_args()

    import uvicorn

    from entity_scorer.infra.config import DEBUG

    level = "debug" if DEBUG else "info"
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "entity_scorer.api.main:app",
        host=args.host,
        port=args.port,
        log_level=level,
    )


if __name__ == "__main__":
    main()
