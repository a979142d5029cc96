"""Fetches book text and bibliographic metadata from Project Gutenberg."""

import logging
from dataclasses import dataclass
from html.parser import HTMLParser

import httpx

from book_analysis.services.exceptions import BookSourceError
from book_analysis.text_processing.text_processing import normalize_text

logger = logging.getLogger(__name__)

GUTENBERG_BASE_URL = "https://www.gutenberg.org"

# Plain-text locations, tried in order until one responds
CONTENT_PATHS = [
    "/files/{id}/{id}-0.txt",
    "/files/{id}/{id}.txt",
    "/cache/epub/{id}/pg{id}.txt",
]
METADATA_PATH = "/ebooks/{id}"

TITLE_AUTHOR_SEPARATOR = " by "
UNKNOWN_AUTHOR = "Unknown"


@dataclass
class BookMetadata:
    title: str
    author: str


class _TitleHeadingParser(HTMLParser):
    """Collects the text of the first ``<h1 itemprop="name">``."""

    def __init__(self):
        super().__init__()
        self.parts: list[str] = []
        self._depth = 0
        self._done = False

    def handle_starttag(self, tag, attrs):
        if self._done:
            return
        if self._depth:
            if tag == "h1":
                self._depth += 1
        elif tag == "h1" and ("itemprop", "name") in attrs:
            self._depth = 1

    def handle_endtag(self, tag):
        if self._depth and tag == "h1":
            self._depth -= 1
            if not self._depth:
                self._done = True

    def handle_data(self, data):
        if self._depth:
            self.parts.append(data)

    @property
    def text(self) -> str:
        return " ".join(" ".join(self.parts).split())


def parse_title_author(html: str) -> BookMetadata:
    """
    Split the metadata page heading into title and author.

    The heading reads "<title> by <author>"; the split happens at the last
    " by " so titles containing the word keep it.

    Raises:
        BookSourceError: If the page has no title heading
    """
    parser = _TitleHeadingParser()
    parser.feed(html)
    parser.close()

    heading = parser.text
    if not heading:
        raise BookSourceError("Metadata page has no title heading")

    title, separator, author = heading.rpartition(TITLE_AUTHOR_SEPARATOR)
    if not separator:
        return BookMetadata(title=heading, author=UNKNOWN_AUTHOR)
    return BookMetadata(title=title.strip(), author=author.strip() or UNKNOWN_AUTHOR)


class BookSourceService:
    """Client for the public Gutenberg text repository."""

    def __init__(
        self,
        base_url: str = GUTENBERG_BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            base_url: Repository root URL
            timeout: Per-request timeout in seconds
            client: Optional pre-configured client (tests pass one with a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get(self, path: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            return await self._client.get(url, follow_redirects=True)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, follow_redirects=True)

    async def fetch_book_content(self, book_id: str) -> str:
        """
        Download the plain text of a book.

        Raises:
            BookSourceError: If no known location serves the text
        """
        errors = []
        for template in CONTENT_PATHS:
            path = template.format(id=book_id)
            try:
                response = await self._get(path)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.debug(f"Book {book_id} not available at {path}: {e}")
                errors.append(f"{path}: {e}")
                continue

            logger.info(f"Fetched book {book_id} from {path} ({len(response.text)} chars)")
            return normalize_text(response.text)

        raise BookSourceError(
            f"Failed to fetch book content for ID {book_id} ({'; '.join(errors)})"
        )

    async def fetch_book_metadata(self, book_id: str) -> BookMetadata:
        """
        Scrape title and author from the book's catalog page.

        Raises:
            BookSourceError: If the page cannot be fetched or parsed
        """
        path = METADATA_PATH.format(id=book_id)
        try:
            response = await self._get(path)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BookSourceError(
                f"Failed to fetch metadata for book {book_id}: {e}", e
            ) from e

        return parse_title_author(response.text)
