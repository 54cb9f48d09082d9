"""Twitter/X source: searches through the external `bird` CLI, classified by keyword."""

import asyncio
import json
import logging
import os
from typing import Any, List, Optional, Sequence

from sentiment_aggregator.collector.rate_limiter import RateLimiter
from sentiment_aggregator.core.classifier import KeywordClassifier
from sentiment_aggregator.exceptions import SourceError
from sentiment_aggregator.models.dtos import ALL_TICKERS, SourceTally

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 5


def _tweet_text(item: Any) -> str:
    if isinstance(item, dict):
        return item.get("text") or item.get("full_text") or ""
    if isinstance(item, str):
        return item
    return ""


def parse_search_output(stdout: str) -> List[str]:
    """
    Extract tweet texts from `bird search` output.

    Accepts a JSON array of tweets, JSON lines, or plain text with one tweet
    per line (lines that are not JSON are taken as the text itself).
    """
    stdout = stdout.strip()
    if not stdout:
        return []

    try:
        parsed = json.loads(stdout)
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, list):
        items = parsed
    elif isinstance(parsed, dict):
        items = [parsed]
    else:
        items = []
        for line in stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                items.append(json.loads(line))
            except json.JSONDecodeError:
                items.append({"text": line})

    return [text for text in (_tweet_text(item) for item in items) if len(text) >= MIN_TEXT_LENGTH]


class TwitterAdapter:
    """
    Runs one CLI search per configured term and combines them into an "ALL" tally.

    The adapter is inactive (returns nothing) unless both session cookies,
    AUTH_TOKEN and CT0, are configured.
    """

    name = "twitter"

    def __init__(
        self,
        search_terms: Sequence[str],
        auth_token: Optional[str] = None,
        ct0: Optional[str] = None,
        cli_path: str = "bird",
        search_limit: int = 30,
        cli_timeout: float = 30.0,
        request_delay: float = 1.0,
        classifier: Optional[KeywordClassifier] = None,
    ):
        self.search_terms = list(search_terms)
        self.auth_token = auth_token
        self.ct0 = ct0
        self.cli_path = cli_path
        self.search_limit = search_limit
        self.cli_timeout = cli_timeout
        self.rate_limiter = RateLimiter(request_delay)
        self.classifier = classifier or KeywordClassifier()

    @property
    def enabled(self) -> bool:
        return bool(self.auth_token and self.ct0)

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            logger.debug(f"Killed {self.cli_path} child {process.pid}")

    async def run_search(self, term: str) -> str:
        """
        Run `bird search <term> --limit N` and return its stdout.

        Raises:
            SourceError: If the CLI is missing, times out or exits non-zero
        """
        env = {**os.environ, "AUTH_TOKEN": self.auth_token or "", "CT0": self.ct0 or ""}
        try:
            process = await asyncio.create_subprocess_exec(
                self.cli_path, "search", term, "--limit", str(self.search_limit),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise SourceError(self.name, f"cannot run {self.cli_path}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.cli_timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise SourceError(self.name, f"search for {term!r} timed out after {self.cli_timeout}s")
        except BaseException:
            # Cancelled by the cycle timeout or a scheduler stop.
            await self._kill(process)
            raise

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[:200]
            raise SourceError(self.name, f"search for {term!r} exited with {process.returncode}: {detail}")
        return stdout.decode("utf-8", errors="replace")

    async def fetch(self) -> List[SourceTally]:
        if not self.enabled:
            logger.info("Twitter: skipping (AUTH_TOKEN/CT0 not set)")
            return []

        tally = SourceTally.from_counts(self.name, 0, 0, 0, ticker=ALL_TICKERS)
        failed = 0
        for term in self.search_terms:
            await self.rate_limiter.pre_request()
            try:
                stdout = await self.run_search(term)
            except SourceError as e:
                logger.warning(f"Twitter search error: {e}")
                failed += 1
                continue

            texts = parse_search_output(stdout)
            for text in texts:
                tally = tally.add(self.classifier.classify(text))
            logger.debug(f"Twitter {term!r}: {len(texts)} tweets")

        if self.search_terms and failed == len(self.search_terms):
            raise SourceError(self.name, f"all {failed} searches failed")

        if tally.total == 0:
            logger.info("Twitter: no results (the CLI session may need refreshing)")
            return []
        logger.info(f"Twitter combined: {tally.bullish_pct:.1f}% bullish ({tally.total} tweets)")
        return [tally]
