"""
robots.txt policy cache for the scraping adapters.

Implements:
- robots.txt parsing (RFC 9309 subset: groups, Allow/Disallow, `*` and `$`)
- Crawl-delay extraction, fed into the domain rate limiter
- Per-domain memoization for the process lifetime

References:
- https://www.rfc-editor.org/rfc/rfc9309.html (Robots Exclusion Protocol)
"""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from legal_research.utils.config import CrawlerConfig, get_settings
from legal_research.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RobotsPolicy:
    """Crawl permissions for one domain.

    Read-only after creation. ``crawl_delay`` is in seconds, None when the
    domain does not declare one.
    """

    domain: str
    allowed_paths: tuple[str, ...] = ()
    disallowed_paths: tuple[str, ...] = ()
    crawl_delay: float | None = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    is_fallback: bool = False

    def is_allowed(self, path: str) -> bool:
        """Check whether `path` may be fetched.

        The longest matching rule wins; Allow wins a tie with Disallow.
        No matching rule means allowed.
        """
        path = path or "/"

        best_allow = max(
            (len(p) for p in self.allowed_paths if _path_matches(path, p)), default=-1
        )
        best_disallow = max(
            (len(p) for p in self.disallowed_paths if _path_matches(path, p)), default=-1
        )

        if best_disallow < 0:
            return True
        return best_allow >= best_disallow

    @classmethod
    def allow_all(cls, domain: str) -> "RobotsPolicy":
        """Policy for a domain without robots.txt."""
        return cls(domain=domain)

    @classmethod
    def fallback(cls, domain: str, crawl_delay: float) -> "RobotsPolicy":
        """Conservative policy used when robots.txt could not be fetched."""
        return cls(domain=domain, crawl_delay=crawl_delay, is_fallback=True)


def _path_matches(path: str, pattern: str) -> bool:
    """Check if path matches robots.txt pattern.

    Supports:
    - * wildcard (any characters)
    - $ end anchor

    Args:
        path: URL path to check.
        pattern: robots.txt pattern.

    Returns:
        True if path matches pattern.
    """
    if not pattern:
        return False

    regex_pattern = "^"
    for i, c in enumerate(pattern):
        if c == "*":
            regex_pattern += ".*"
        elif c == "$" and i == len(pattern) - 1:
            regex_pattern += "$"
        else:
            regex_pattern += re.escape(c)

    try:
        return bool(re.match(regex_pattern, path))
    except re.error:
        return False


def parse_robots_txt(domain: str, content: str, agent_token: str) -> RobotsPolicy:
    """Parse robots.txt content.

    Rules from groups naming our agent token take precedence over the `*`
    group; when no group names us, the `*` group applies.

    Args:
        domain: Domain name.
        content: robots.txt content.
        agent_token: Product token of our crawler (case-insensitive).

    Returns:
        Parsed RobotsPolicy.
    """
    agent_token = agent_token.lower()
    groups: dict[str, dict] = {
        "specific": {"allow": [], "disallow": [], "delay": None, "seen": False},
        "wildcard": {"allow": [], "disallow": [], "delay": None, "seen": False},
    }

    current: list[str] = []
    in_agent_lines = False

    for line in content.splitlines():
        # Remove inline comments (RFC 9309 allows # comments anywhere)
        line = line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue

        directive, _, value = line.partition(":")
        directive = directive.strip().lower()
        value = value.strip()

        if directive == "user-agent":
            if not in_agent_lines:
                current = []
            in_agent_lines = True
            agent = value.lower()
            if agent == "*":
                current.append("wildcard")
            elif agent == agent_token:
                current.append("specific")
            continue

        in_agent_lines = False

        for group_name in current:
            group = groups[group_name]
            group["seen"] = True
            if directive == "disallow" and value:
                group["disallow"].append(value)
            elif directive == "allow" and value:
                group["allow"].append(value)
            elif directive == "crawl-delay":
                try:
                    group["delay"] = float(value)
                except ValueError:
                    pass

    chosen = groups["specific"] if groups["specific"]["seen"] else groups["wildcard"]
    return RobotsPolicy(
        domain=domain,
        allowed_paths=tuple(chosen["allow"]),
        disallowed_paths=tuple(chosen["disallow"]),
        crawl_delay=chosen["delay"],
    )


# =============================================================================
# Policy Cache
# =============================================================================


class RobotsPolicyCache:
    """Fetch-once robots.txt policies keyed by domain.

    ``get_policy`` never raises: an unreachable robots.txt yields the
    conservative fallback (everything allowed, long crawl delay) so scraping
    degrades to slow rather than failing outright.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: CrawlerConfig | None = None,
    ) -> None:
        self._config = config if config is not None else get_settings().crawler
        self._client = client
        self._owns_client = client is None
        self._policies: dict[str, RobotsPolicy] = {}
        self._domain_locks: dict[str, asyncio.Lock] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.robots_timeout_seconds,
                headers={"User-Agent": self._config.user_agent},
                follow_redirects=True,
            )
        return self._client

    async def get_policy(self, domain: str) -> RobotsPolicy:
        """Get the policy for a domain, fetching robots.txt on first use.

        Args:
            domain: Host name, e.g. "lawreview.stanford.edu".

        Returns:
            RobotsPolicy (possibly the fallback policy).
        """
        domain = domain.lower()
        cached = self._policies.get(domain)
        if cached is not None:
            return cached

        lock = self._domain_locks.setdefault(domain, asyncio.Lock())
        async with lock:
            cached = self._policies.get(domain)
            if cached is not None:
                return cached

            policy = await self._fetch_policy(domain)
            self._policies[domain] = policy
            return policy

    async def _fetch_policy(self, domain: str) -> RobotsPolicy:
        robots_url = f"https://{domain}/robots.txt"

        try:
            client = await self._get_client()
            response = await client.get(robots_url)
        except Exception as e:
            logger.error(
                "robots.txt fetch error, using fallback policy",
                domain=domain,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RobotsPolicy.fallback(domain, self._config.fallback_crawl_delay_seconds)

        if 400 <= response.status_code < 500:
            # RFC 9309: unavailable robots.txt means no restrictions
            logger.debug("No robots.txt found", domain=domain, status=response.status_code)
            return RobotsPolicy.allow_all(domain)

        if response.status_code != 200:
            logger.warning(
                "robots.txt unreachable, using fallback policy",
                domain=domain,
                status=response.status_code,
            )
            return RobotsPolicy.fallback(domain, self._config.fallback_crawl_delay_seconds)

        policy = parse_robots_txt(domain, response.text, self._config.robots_agent_token)
        logger.info(
            "Fetched robots.txt",
            domain=domain,
            disallowed_count=len(policy.disallowed_paths),
            crawl_delay=policy.crawl_delay,
        )
        return policy

    def clear(self) -> None:
        """Forget every cached policy."""
        self._policies.clear()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


# Global instance
_robots_cache: RobotsPolicyCache | None = None


def get_robots_cache() -> RobotsPolicyCache:
    """Get or create the process-wide robots policy cache."""
    global _robots_cache
    if _robots_cache is None:
        _robots_cache = RobotsPolicyCache()
    return _robots_cache


def reset_robots_cache() -> None:
    """Reset the global robots policy cache (for testing only)."""
    global _robots_cache
    _robots_cache = None
