"""
Phoenix Tracker — Entry Point.

`python main.py` starts the Telegram bot. Log verbosity comes from
LOG_LEVEL in .env (default INFO).
"""

import logging

from src.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.bot.telegram_bot import main

if __name__ == "__main__":
    main()
