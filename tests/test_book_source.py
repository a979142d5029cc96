import httpx
import pytest

from book_analysis.services.book_source_service import (
    BookSourceService,
    parse_title_author,
)
from book_analysis.services.exceptions import BookSourceError

METADATA_HTML = """
<html><body>
  <h1 itemprop="name">Pride and Prejudice by Jane Austen</h1>
</body></html>
"""


def _service(routes: dict[str, httpx.Response], requested: list[str]) -> BookSourceService:
    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return routes.get(request.url.path, httpx.Response(404))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BookSourceService(base_url="https://books.test", client=client)


@pytest.mark.asyncio
async def test_content_falls_back_through_known_locations():
    requested: list[str] = []
    service = _service(
        {"/files/1342/1342.txt": httpx.Response(200, text="\ufeffIt is a truth\r\nuniversally")},
        requested,
    )

    content = await service.fetch_book_content("1342")

    assert content == "It is a truth\nuniversally"
    assert requested == ["/files/1342/1342-0.txt", "/files/1342/1342.txt"]


@pytest.mark.asyncio
async def test_content_unavailable_everywhere():
    requested: list[str] = []
    service = _service({}, requested)

    with pytest.raises(BookSourceError, match="1342"):
        await service.fetch_book_content("1342")
    assert requested[-1] == "/cache/epub/1342/pg1342.txt"


@pytest.mark.asyncio
async def test_metadata_is_scraped_from_catalog_page():
    service = _service({"/ebooks/1342": httpx.Response(200, text=METADATA_HTML)}, [])

    metadata = await service.fetch_book_metadata("1342")

    assert metadata.title == "Pride and Prejudice"
    assert metadata.author == "Jane Austen"


@pytest.mark.asyncio
async def test_metadata_fetch_failure():
    with pytest.raises(BookSourceError):
        await _service({}, []).fetch_book_metadata("1342")


def test_title_split_uses_last_separator():
    metadata = parse_title_author('<h1 itemprop="name">Stand by Me by Stephen King</h1>')
    assert (metadata.title, metadata.author) == ("Stand by Me", "Stephen King")


def test_heading_without_author():
    metadata = parse_title_author('<h1 itemprop="name">Beowulf</h1>')
    assert (metadata.title, metadata.author) == ("Beowulf", "Unknown")


def test_missing_heading():
    with pytest.raises(BookSourceError):
        parse_title_author("<h1>Not the catalog heading</h1>")
