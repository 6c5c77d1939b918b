"""IArticleSource adapter for a Mercury-compatible article parser API."""

import html
import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from article_audio.domain.models import ArticleDocument
from article_audio.errors import FetchError
from article_audio.ports.interfaces import IArticleSource

logger = logging.getLogger(__name__)

_BLOCK_TAGS = r"p|div|h[1-6]|li|ul|ol|blockquote|section|article|header|footer|figure|figcaption|pre|table|tr"
_DROP_ELEMENTS = re.compile(r"<(script|style|noscript|figure)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_BLOCK_BREAK = re.compile(rf"</?(?:{_BLOCK_TAGS})\b[^>]*>", re.IGNORECASE)
_LINE_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]+>")


def html_to_text(content: str) -> str:
    """Plain text from article HTML: paragraphs kept, links and images dropped."""
    text = _DROP_ELEMENTS.sub(" ", content)
    text = _LINE_BREAK.sub("\n", text)
    text = _BLOCK_BREAK.sub("\n\n", text)
    text = _ANY_TAG.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")

    paragraphs = []
    for block in re.split(r"\n\s*\n", text):
        lines = [" ".join(line.split()) for line in block.split("\n")]
        block = "\n".join(line for line in lines if line)
        if block:
            paragraphs.append(block)
    return "\n\n".join(paragraphs)


def format_published_date(value: Optional[str]) -> Optional[str]:
    """'2018-01-02T10:00:00.000Z' -> 'Tue Jan 02 2018'; unparseable values pass through."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%a %b %d %Y")


def compose_narration(
    text: str,
    *,
    title: Optional[str],
    author: Optional[str] = None,
    published_date: Optional[str] = None,
    domain: Optional[str] = None,
) -> str:
    """Prefix the article text with a spoken header (title, byline, date, site)."""
    header = []
    if title:
        header.append(title)
    if author:
        header.append(f"By: {author}")
    spoken_date = format_published_date(published_date)
    if spoken_date:
        header.append(f"Published on: {spoken_date}")
    if domain:
        header.append(f"Published at: {domain}")
    return "\n\n".join(header + [text])


class ParserArticleSource(IArticleSource):
    """Fetches `GET <api_url>?url=<url>` with an `x-api-key` header."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()

    def fetch(self, url: str) -> ArticleDocument:
        logger.info("Fetching article data for %s", url)
        try:
            response = self._session.get(
                self._api_url,
                params={"url": url},
                headers={"x-api-key": self._api_key},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise FetchError("Article parser request failed", cause=e) from e

        if response.status_code != 200:
            raise FetchError(f"Article parser returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise FetchError("Article parser returned invalid JSON", cause=e) from e

        if not isinstance(body, dict) or not body.get("content") or not body.get("title"):
            raise FetchError("Article parser could not find or process the article body")

        return self._to_document(body, url)

    @staticmethod
    def _to_document(body: Dict[str, Any], requested_url: str) -> ArticleDocument:
        title = html.unescape(str(body["title"]))
        plain = html_to_text(str(body["content"]))
        if not plain:
            raise FetchError("Article body is empty after HTML conversion")
        narration = compose_narration(
            plain,
            title=title,
            author=body.get("author"),
            published_date=body.get("date_published"),
            domain=body.get("domain"),
        )
        return ArticleDocument(
            title=title,
            body=narration,
            source_url=body.get("url") or requested_url,
            author=body.get("author"),
            published_date=body.get("date_published"),
            excerpt=body.get("excerpt"),
            lead_image_url=body.get("lead_image_url"),
            domain=body.get("domain"),
        )
