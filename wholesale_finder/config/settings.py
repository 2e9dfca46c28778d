# wholesale_finder/config/settings.py

"""Central configuration for the wholesale_finder engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the wholesale_finder engine."""

    # --- Scraping ---
    REQUEST_TIMEOUT: int = 20           # Default seconds per fetch
    MAX_REDIRECTS: int = 5
    MIN_PAGE_BYTES: int = 1000          # Smaller bodies are treated as empty
    URL_ATTEMPT_DELAY: tuple[float, float] = (1.0, 3.0)
    MAX_PRODUCTS_PER_PAGE: int = 8

    # --- Resilience ---
    MAX_RETRIES: int = 3                # Whole-scraper attempts
    ANALYZE_RETRIES: int = 2
    RETRY_BASE_DELAY: float = 1.0       # Seconds, doubled per attempt
    RETRY_MAX_JITTER: float = 0.5
    BLOCK_COOLDOWN: tuple[float, float] = (2.0, 4.0)
    CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    # --- Currency ---
    LOCAL_CURRENCY: str = "KRW"
    EXCHANGE_RATE_URL: str = os.getenv(
        "EXCHANGE_RATE_URL", "https://api.exchangerate.host/latest"
    )
    EXCHANGE_RATE_TTL: float = 3600.0   # Seconds a fetched rate stays fresh
    EXCHANGE_RATE_TIMEOUT: int = 10
    FALLBACK_RATES: dict[str, float] = {"USD": 1300.0, "CNY": 180.0}

    # --- Summarization / translation service ---
    DEEPSEEK_API_KEY: str = os.getenv("DEEPSEEK_API_KEY", "")
    DEEPSEEK_BASE_URL: str = os.getenv(
        "DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1"
    )
    DEEPSEEK_MODEL: str = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
    AI_TIMEOUT: float = 30.0
    AI_TEMPERATURE: float = 0.7
    TRANSLATION_MEMO_SIZE: int = 256    # Oldest keyword translations evicted first

    # --- Search / alternatives ---
    SEARCH_SITES: list[str] = ["alibaba", "dhgate", "1688"]
    ALTERNATIVE_COUNT: int = 3
    ALTERNATIVE_KEYWORD_WORDS: int = 3

    # --- VPN mode ---
    VPN_CHECK_URL: str = "https://ipapi.co/json/"
    HOME_COUNTRY: str = "KR"
    VPN_PROFILE: dict[str, str | int] = {
        "accept_language": "zh-CN,zh;q=0.9,en;q=0.8",
        "timeout": 15,
        "max_products": 4,
    }

    # --- HTTP API ---
    API_HOST: str = os.getenv("WHOLESALE_FINDER_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("WHOLESALE_FINDER_PORT", "8000"))

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    USER_AGENTS: list[str] = [
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/130.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) "
            "Gecko/20100101 Firefox/133.0"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/605.1.15 (KHTML, like Gecko) "
            "Version/17.1 Safari/605.1.15"
        ),
    ]
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9,ko;q=0.8",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "wholesale_finder" / "config" / "selectors.json"
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sources (registry of per-site scrapers) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "alibaba",
            "label": "Alibaba",
            "scraper": (
                "wholesale_finder.scrapers.alibaba_scraper.AlibabaScraper"
            ),
        },
        {
            "id": "1688",
            "label": "1688",
            "scraper": (
                "wholesale_finder.scrapers.china1688_scraper."
                "China1688Scraper"
            ),
        },
        {
            "id": "dhgate",
            "label": "DHgate",
            "scraper": (
                "wholesale_finder.scrapers.dhgate_scraper.DHgateScraper"
            ),
        },
        {
            "id": "aliexpress",
            "label": "AliExpress",
            "scraper": (
                "wholesale_finder.scrapers.aliexpress_scraper."
                "AliExpressScraper"
            ),
        },
    ]
