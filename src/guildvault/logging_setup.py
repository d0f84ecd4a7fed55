from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger for the bot process."""
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # discord.py is chatty about every request at DEBUG
    logging.getLogger("discord.http").setLevel(max(numeric, logging.INFO))
    logging.getLogger("discord.gateway").setLevel(max(numeric, logging.INFO))
