"""Article fetcher and text extractor."""

from dataclasses import dataclass, field

import httpx
from lxml import etree
from lxml import html as lxml_html

from readinglist.utils.logging import get_logger

logger = get_logger(__name__)


class FetchError(Exception):
    """Raised when an article cannot be fetched.

    ``status_code`` is set when the server answered with a non-success status
    and is None for transport failures (DNS, connection, timeout).
    """

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason)

    @property
    def is_transport_error(self) -> bool:
        """True when no HTTP response was received at all."""
        return self.status_code is None


class ParseError(Exception):
    """Raised when fetched bytes cannot be parsed as markup."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


@dataclass
class FetchedPage:
    """Raw response for a fetched URL."""

    requested_url: str
    url: str
    status_code: int
    content: bytes = field(repr=False)

    @property
    def was_redirected(self) -> bool:
        return self.url != self.requested_url


@dataclass
class ExtractedText:
    """Title and body text pulled out of a page."""

    title: str
    body: str


class ArticleFetcher:
    """Fetches raw article content from URLs."""

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={
                "User-Agent": (
                    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
                    "AppleWebKit/537.36 (KHTML, like Gecko) "
                    "Chrome/131.0.0.0 Safari/537.36"
                ),
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ArticleFetcher":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def fetch(self, url: str) -> FetchedPage:
        """Fetch a URL once, following redirects.

        Args:
            url: The URL to fetch.

        Returns:
            The final URL and raw body of a successful (2xx) response.

        Raises:
            FetchError: On transport failure or a non-success status code.
        """
        logger.info("Fetching article", url=url)

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            logger.warning("Timeout fetching URL", url=url)
            raise FetchError("timeout") from e
        except httpx.RequestError as e:
            logger.warning("Request error fetching URL", url=url, error=str(e))
            raise FetchError(f"request error: {e}") from e
        except httpx.InvalidURL as e:
            logger.warning("Invalid URL", url=url, error=str(e))
            raise FetchError(f"invalid url: {e}") from e

        if not response.is_success:
            logger.warning("HTTP error fetching URL", url=url, status=response.status_code)
            raise FetchError(f"HTTP {response.status_code}", status_code=response.status_code)

        page = FetchedPage(
            requested_url=url,
            url=str(response.url),
            status_code=response.status_code,
            content=response.content,
        )
        logger.info(
            "Article fetched",
            url=url,
            final_url=page.url,
            redirected=page.was_redirected,
            size=len(page.content),
        )
        return page


def extract_text(content: bytes) -> ExtractedText:
    """Extract the <title> and <body> text content of an HTML document.

    Missing elements yield empty strings, and so does a document with no
    elements at all (empty, whitespace or comments only). The title is
    returned as found; fallbacks are up to the caller.

    Raises:
        ParseError: If lxml cannot build a document from ``content``.
    """
    try:
        document = lxml_html.document_fromstring(content)
    except etree.ParserError:
        return ExtractedText(title="", body="")
    except (etree.XMLSyntaxError, ValueError) as e:
        raise ParseError(f"unparseable markup: {e}") from e

    title = "".join(element.text_content() for element in document.iter("title"))
    body = "".join(element.text_content() for element in document.iter("body"))
    return ExtractedText(title=title, body=body)
