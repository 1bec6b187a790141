"""Development launcher for Uvicorn that ensures logging is configured before reload workers start."""

from __future__ import annotations

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from tipjar_common.logging.setup_logging import setup_logging


def main() -> None:
    """Configure logging and delegate to uvicorn.run."""

    # Load environment variables BEFORE setting up logging
    env = os.getenv("APP_ENV", "local")
    base_dir = Path(__file__).resolve().parent.parent / "libs" / "common"
    env_file = base_dir / (".env.local" if env == "local" else f".env.{env}")
    if env_file.exists():
        _ = load_dotenv(env_file)

    setup_logging()
    uvicorn.run(
        "tipjar_api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
        reload=env == "local",
        reload_dirs=[".", "../libs"],  # Watch current dir (backend) and libs
    )


if __name__ == "__main__":
    main()
