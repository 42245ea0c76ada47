"""Ambient Bot launcher. Reads .env, then runs the Discord client until stopped."""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from ambient_bot.config import ConfigError, Settings
from ambient_bot.discord_bot import AmbientBot
from ambient_bot.generator import AmbientGenerator
from ambient_bot.llm import HttpLLM
from ambient_bot.storage import ConfigStore

ROOT = Path(__file__).parent

logger = logging.getLogger("ambient_bot")


def main():
    parser = argparse.ArgumentParser(description="Ambient world-event bot for Discord")
    parser.add_argument("--data-file", type=Path, default=None,
                        help="Channel config JSON (default: DATA_FILE_PATH or ./channel-config.json)")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: LOG_LEVEL or INFO)")
    args = parser.parse_args()

    load_dotenv(ROOT / ".env")
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    if args.data_file:
        settings = settings.model_copy(update={"data_file": args.data_file})

    level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("channel configs at %s", settings.data_file)

    llm = HttpLLM(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout=settings.llm_timeout,
    )
    bot = AmbientBot(
        ConfigStore(settings.data_file),
        AmbientGenerator(llm),
        period=settings.post_every_hours * 3600,
        first_delay=settings.first_post_delay,
    )
    # discord.py installs its own log handler unless told not to.
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
