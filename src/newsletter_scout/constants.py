# src/newsletter_scout/constants.py
"""Centralized constants for the newsletter crawler.

This module contains defaults, selectors and URL patterns used across
multiple modules. For user-configurable values, see config.py and
CrawlConfig.
"""

# =============================================================================
# Crawl Defaults
# =============================================================================

# Seed used when the input names none
DEFAULT_SEED_URLS = ["https://substack.com/discover"]

# Total number of requests a single run may accept into the frontier
DEFAULT_MAX_REQUESTS = 500

# Domain family whose hosts are always in scope and count as publisher hosts
DEFAULT_TARGET_DOMAINS = ["substack.com"]

# Platform hosts that are not publications themselves
PLATFORM_RESERVED_SUBDOMAINS = frozenset({"www", "api", "cdn", "on", "support", "help"})

# Worker pool sizes, one per fetch mode
DEFAULT_STATIC_CONCURRENCY = 10
DEFAULT_RENDERED_CONCURRENCY = 3


# =============================================================================
# Fetching
# =============================================================================

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# Bounded wait for a rendered page to reach network idle
DEFAULT_SETTLE_TIMEOUT_SECONDS = 5.0

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Status codes worth treating as transient failures
TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


# =============================================================================
# Link Discovery
# =============================================================================

# Glob patterns a discovered link must match to be offered to the frontier
DEFAULT_LINK_PATTERNS = [
    "**/*.substack.com/**",
    "**/s/*",
    "**/tag/**",
    "**/discover**",
    "**/posts/**",
    "**/archive**",
    "**/p/*",
]

SKIPPED_HREF_PREFIXES = ("mailto:", "tel:", "javascript:", "data:", "#")

SKIPPED_EXTENSIONS = frozenset({
    '.pdf', '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.zip', '.tar', '.gz', '.mp4', '.mp3', '.avi', '.mov',
    '.css', '.js', '.json', '.ico', '.woff', '.woff2', '.ttf',
})

# Syndication endpoints are recorded as feed URLs, never crawled
SKIPPED_PATH_SUFFIXES = ("/feed", "/rss", "/feed.xml", "/rss.xml")


# =============================================================================
# Page Classification
# =============================================================================

# Path prefixes marking a single publication's archive or posts
RECORD_PATH_MARKERS = ("/archive", "/p/", "/posts/")

# Path prefixes marking discovery and topic listings
LISTING_PATH_MARKERS = ("/discover", "/tag/", "/topics/", "/s/", "/browse", "/leaderboard")


# =============================================================================
# Extraction Selectors
# =============================================================================

TITLE_HEADING_SELECTOR = "h1"
OG_TITLE_SELECTOR = 'meta[property="og:title"]'
TITLE_ELEMENT_SELECTOR = "title"

PUBLISHER_NAME_SELECTOR = '[data-test="publisher-name"]'
AUTHOR_LINK_SELECTOR = 'a[rel="author"], .byline a, .post-meta a[href*="/@"], a[href*="/profile/"]'
AUTHOR_META_SELECTOR = 'meta[name="author"]'

OG_DESCRIPTION_SELECTOR = 'meta[property="og:description"]'
META_DESCRIPTION_SELECTOR = 'meta[name="description"]'
TAGLINE_SELECTOR = ".site-description, .newsletter-subtitle, .sub-header"

TOPIC_SELECTOR = 'a[href*="/tag/"], a[href*="/topics/"], .tags a, .topic'

FEED_LINK_SELECTOR = 'link[type="application/rss+xml"]'
FEED_ANCHOR_SELECTOR = 'a[href$="/feed"], a[href$="/rss"]'
FEED_PATH = "/feed"

LATEST_POST_TITLE_SELECTOR = ".post-preview h3, .post-list-item h3"
LATEST_POST_LINK_SELECTOR = ".post-preview a[href], .post-list-item a[href]"
LATEST_POST_SEPARATOR = " — "

# Best-effort; scans the whole page text and may match unrelated counts
SUBSCRIBER_COUNT_PATTERN = r"[\d,]{2,}\s+subscribers?"
