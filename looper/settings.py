"""Configuration settings for the looper research engine."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# SearXNG metasearch instance used by the web search provider
SEARXNG_URL = os.getenv("SEARXNG_URL", "http://localhost:8080")
SEARXNG_LANGUAGE = os.getenv("SEARXNG_LANGUAGE", "en")

# Page reader
HTTP_USER_AGENT = os.getenv(
    "LOOPER_USER_AGENT",
    "Mozilla/5.0 (compatible; LooperResearchBot/1.0)",
)
READER_MAX_CHARS = int(os.getenv("READER_MAX_CHARS", "20000"))

# Per provider call timeout (seconds)
PROVIDER_TIMEOUT = float(os.getenv("PROVIDER_TIMEOUT", "15.0"))

# Retry settings
MAX_RETRIES = 3
RETRY_BACKOFF_FACTOR = 1.0
