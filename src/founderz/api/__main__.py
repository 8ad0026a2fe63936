# src/founderz/api/__main__.py
from __future__ import annotations

import uvicorn

from founderz.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so FOUNDERZ_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from founderz.api.app import create_app
    from founderz.api.config import load_api_config
    from founderz.api.structured_logging import configure_structured_logging

    configure_structured_logging()
    cfg = load_api_config()

    uvicorn.run(create_app(), host=cfg.host, port=cfg.port, log_level="info")


if __name__ == "__main__":
    main()
